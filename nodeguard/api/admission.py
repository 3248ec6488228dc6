"""AdmissionReview (admission.k8s.io/v1) envelope and Node decoding.

Only the fields the decision needs are modelled; everything else is tolerated
(`extra="allow"`) because the API server sends full objects.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nodeguard.core.models import DecisionRequest, NodeRef, NodeState
from nodeguard.core.operations import classify_operation

ADMISSION_API_VERSION = "admission.k8s.io/v1"


class AdmissionDecodeError(Exception):
    """Malformed AdmissionReview or undecodable node object (maps to a 400 result)."""


class BaseModelAllowExtra(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class UserInfo(BaseModelAllowExtra):
    username: str = ""
    uid: Optional[str] = None
    groups: List[str] = Field(default_factory=list)


class ObjectMeta(BaseModelAllowExtra):
    name: str = ""
    uid: Optional[str] = None
    annotations: Optional[Dict[str, str]] = None


class NodeSpec(BaseModelAllowExtra):
    unschedulable: bool = False


class NodeObject(BaseModelAllowExtra):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: NodeSpec = Field(default_factory=NodeSpec)


class AdmissionRequest(BaseModelAllowExtra):
    uid: str
    name: str = ""
    operation: str
    user_info: UserInfo = Field(default_factory=UserInfo, alias="userInfo")
    object: Optional[Dict[str, Any]] = None
    old_object: Optional[Dict[str, Any]] = Field(default=None, alias="oldObject")
    dry_run: bool = Field(default=False, alias="dryRun")


class AdmissionReview(BaseModelAllowExtra):
    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = "AdmissionReview"
    request: Optional[AdmissionRequest] = None


def parse_review(payload: Any) -> AdmissionReview:
    try:
        review = AdmissionReview.model_validate(payload)
    except ValidationError as e:
        raise AdmissionDecodeError(f"invalid AdmissionReview: {e.error_count()} validation error(s)") from e
    if review.request is None:
        raise AdmissionDecodeError("AdmissionReview has no request")
    return review


def decode_node(raw: Optional[Dict[str, Any]], *, name: str, field: str) -> NodeState:
    if raw is None:
        raise AdmissionDecodeError(f"failed to decode node {name!r}: {field} is missing")
    try:
        node = NodeObject.model_validate(raw)
    except ValidationError as e:
        raise AdmissionDecodeError(f"failed to decode node {name!r}") from e
    return NodeState(
        node=NodeRef(name=node.metadata.name or name, uid=node.metadata.uid),
        unschedulable=node.spec.unschedulable,
        annotations=dict(node.metadata.annotations or {}),
    )


def to_decision_request(req: AdmissionRequest) -> DecisionRequest:
    """
    Decode the node state(s) the verb needs and classify the operation.

    The reason annotation is read from the object that carries the user's intent:
    the existing node for DELETE, the incoming node for CREATE and UPDATE.
    """
    verb = (req.operation or "").strip().upper()
    if verb == "DELETE":
        before = decode_node(req.old_object, name=req.name, field="oldObject")
        current, after = before, None
    elif verb == "CREATE":
        after = decode_node(req.object, name=req.name, field="object")
        current, before = after, None
    elif verb == "UPDATE":
        before = decode_node(req.old_object, name=req.name, field="oldObject")
        after = decode_node(req.object, name=req.name, field="object")
        current = after
    else:
        raise AdmissionDecodeError(f"unsupported operation {req.operation!r}")

    operation = classify_operation(verb, before, after)
    return DecisionRequest(
        operation=operation,
        principal=req.user_info.username,
        reason=current.reason,
        node=current.node,
    )


def _response(uid: str, *, allowed: bool, code: int, message: str, reason: Optional[str] = None) -> Dict[str, Any]:
    status: Dict[str, Any] = {"code": code, "message": message}
    if reason:
        status["reason"] = reason
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": "AdmissionReview",
        "response": {"uid": uid, "allowed": allowed, "status": status},
    }


def allowed(uid: str, message: str) -> Dict[str, Any]:
    return _response(uid, allowed=True, code=200, message=message)


def denied(uid: str, message: str) -> Dict[str, Any]:
    return _response(uid, allowed=False, code=403, message=message, reason="Forbidden")


def errored(uid: str, code: int, message: str) -> Dict[str, Any]:
    reason = "BadRequest" if code == 400 else "InternalError"
    return _response(uid, allowed=False, code=code, message=message, reason=reason)

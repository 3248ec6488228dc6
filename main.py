#!/usr/bin/env python3
"""
Node Operation Validator - admission webhook for node create/delete/cordon/uncordon.
Requires a reason annotation for human-initiated destructive node operations.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep nodeguard imports lazy (inside functions) so `--help` works without the
# kubernetes client configured.
#


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def load_policy_data(path: Optional[str]) -> Dict[str, str]:
    """
    Load reason policy data from a YAML/JSON file.

    Accepts either a full ConfigMap manifest (uses its `data`) or a plain mapping of
    `allowedReasons` / `reasonRegexPattern`.
    """
    if not path:
        return {}
    import yaml

    doc = yaml.safe_load(_read_text(path)) or {}
    if not isinstance(doc, dict):
        raise ValueError(f"policy file {path!r} must contain a mapping")
    if doc.get("kind") == "ConfigMap":
        doc = doc.get("data") or {}
    return {str(k): "" if v is None else str(v) for k, v in doc.items()}


def evaluate_review_file(
    review_path: str,
    *,
    policy_path: Optional[str] = None,
    forbidden_users: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Evaluate one AdmissionReview offline (dry run: no cluster access, no events)."""
    from nodeguard.api.webhook import review_response
    from nodeguard.audit import NullAuditEmitter
    from nodeguard.authz.policy import StaticPolicySource
    from nodeguard.pipeline.decision import DecisionEngine

    payload = json.loads(_read_text(review_path))
    source = StaticPolicySource(load_policy_data(policy_path), forbidden_users=forbidden_users or [])
    engine = DecisionEngine(policy_source=source, emitter=NullAuditEmitter())
    return review_response(payload, engine)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Validate node lifecycle operations (admission webhook)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the webhook server (in-cluster)
  python main.py --serve-webhook

  # Evaluate an AdmissionReview against a local copy of the policy ConfigMap
  python main.py --review-file review.json --policy-file configmap.yaml
        """,
    )

    parser.add_argument(
        "--serve-webhook",
        action="store_true",
        help="Run the HTTPS admission webhook server (in-cluster)",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Webhook server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=9443, help="Webhook server listen port (default: 9443)")
    parser.add_argument("--tls-cert-file", help="Serving certificate (default: WEBHOOK_TLS_CERT_FILE)")
    parser.add_argument("--tls-key-file", help="Serving key (default: WEBHOOK_TLS_KEY_FILE)")
    parser.add_argument(
        "--review-file",
        metavar="PATH",
        help="Evaluate an AdmissionReview JSON file offline and print the response ('-' reads stdin)",
    )
    parser.add_argument(
        "--policy-file",
        metavar="PATH",
        help="ConfigMap manifest (or plain mapping) with allowedReasons/reasonRegexPattern (used with --review-file)",
    )
    parser.add_argument(
        "--forbidden-users",
        default="",
        help="Comma separated forbidden users for --review-file (system:admin is always included)",
    )

    args = parser.parse_args()

    if args.serve_webhook:
        from nodeguard.api.webhook import run as run_webhook

        run_webhook(host=args.host, port=args.port, tls_cert_file=args.tls_cert_file, tls_key_file=args.tls_key_file)
        return

    if args.review_file:
        forbidden = [x.strip() for x in args.forbidden_users.split(",") if x.strip()]
        body = evaluate_review_file(args.review_file, policy_path=args.policy_file, forbidden_users=forbidden)
        print(json.dumps(body, indent=2, sort_keys=False))
        response = body.get("response") or {}
        sys.exit(0 if response.get("allowed") else 1)

    parser.print_help()


if __name__ == "__main__":
    main()

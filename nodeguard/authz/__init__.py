"""Authorization / policy layer (env/ConfigMap driven).

This package is intentionally lightweight so admins can control:
- which principals may never touch nodes (forbidden users)
- which reasons are acceptable for node operations (list + regex pattern)
"""

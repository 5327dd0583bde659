"""Entry point for the credential verify service."""

from __future__ import annotations

from verified_id_common.runtime import serve_service
from verifier_app.app import SERVICE_NAME, create_app
from verifier_app.config import get_settings


def main() -> None:
    """Start the verify service."""
    serve_service(SERVICE_NAME, get_settings, create_app)


if __name__ == "__main__":
    main()

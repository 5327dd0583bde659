"""Entry point for the credential issue service."""

from __future__ import annotations

from issuer_app.app import SERVICE_NAME, create_app
from issuer_app.config import get_settings
from verified_id_common.runtime import serve_service


def main() -> None:
    """Start the issue service."""
    serve_service(SERVICE_NAME, get_settings, create_app)


if __name__ == "__main__":
    main()

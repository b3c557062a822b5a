from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Sequence

from .config.settings import IdTokenSettings
from .domain.constants import SecretEncoding
from .domain.exceptions import IdTokenValidationError
from .integrations.common.validator_factory import create_id_token_auth_from_settings


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pkg-idtoken",
        description="Validate an OpenID Connect ID token and print its claims",
    )

    parser.add_argument("token", help="The compact ID token ('-' reads it from stdin)")
    parser.add_argument(
        "--issuer",
        default=os.getenv("OIDC_ISSUER"),
        help="Expected issuer, exactly as the authority emits it "
             "(defaults from env OIDC_ISSUER).",
    )
    parser.add_argument(
        "--audience",
        default=os.getenv("OIDC_CLIENT_ID"),
        help="Expected audience / client id (defaults from env OIDC_CLIENT_ID).",
    )
    parser.add_argument(
        "--client-secret",
        default=os.getenv("OIDC_CLIENT_SECRET"),
        help="Client secret for HS256 tokens (defaults from env OIDC_CLIENT_SECRET).",
    )
    parser.add_argument(
        "--secret-base64",
        action="store_true",
        help="The client secret is base64url-encoded.",
    )
    parser.add_argument("--algorithm", choices=["HS256", "RS256"], help="Pin the signing algorithm.")
    parser.add_argument(
        "--leeway",
        type=float,
        default=os.getenv("OIDC_LEEWAY_SECONDS", "60"),
        help="Clock skew in seconds (defaults from env OIDC_LEEWAY_SECONDS, else 60).",
    )
    parser.add_argument("--nonce", help="Expected nonce.")
    parser.add_argument("--max-age", type=float, help="Maximum authentication age in seconds.")
    parser.add_argument("--organization", help="Expected organization id (org_...) or name.")
    parser.add_argument(
        "--jwks-uri",
        default=os.getenv("OIDC_JWKS_URI"),
        help="Key-set URL (default: <issuer>/.well-known/jwks.json).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log to stderr.")

    args = parser.parse_args(args=argv)
    if not args.issuer or not args.audience:
        parser.error("--issuer and --audience are required (or set OIDC_ISSUER / OIDC_CLIENT_ID)")
    return args


def _run(args: argparse.Namespace) -> dict[str, Any]:
    settings = IdTokenSettings(
        issuer=args.issuer,
        client_id=args.audience,
        client_secret=args.client_secret,
        secret_encoding=SecretEncoding.BASE64URL if args.secret_base64 else SecretEncoding.UTF8,
        algorithm=args.algorithm,
        leeway_seconds=args.leeway,
        jwks_uri=args.jwks_uri,
    )
    auth = create_id_token_auth_from_settings(settings)

    token = sys.stdin.read().strip() if args.token == "-" else args.token
    claims = auth.authenticate(
        token,
        nonce=args.nonce,
        max_age=args.max_age,
        organization=args.organization,
    )
    return {"claims": claims}


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    try:
        summary = _run(args)
    except IdTokenValidationError as exc:
        json.dump(
            {"ok": False, "error": exc.code, "retryable": exc.retryable, "message": str(exc)},
            sys.stdout,
            indent=2,
        )
        sys.stdout.write("\n")
        raise SystemExit(1) from exc

    json.dump({"ok": True, **summary}, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()

"""Command-line user administration for the ITM realm.

This module is a CLI wrapper around backend_resources.core services:
the same validation and error translation as the HTTP API.
"""
from __future__ import annotations
import argparse
import json
import os
import sys
from pathlib import Path

import requests

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend_resources.config.settings import DEFAULT_REALM
from backend_resources.core import audit, validators
from backend_resources.core.errors import BackendResourcesError, ValidationError
from backend_resources.core.keycloak import KeycloakClient, KeycloakUserAdmin
from backend_resources.core.keycloak.exceptions import KeycloakError
from backend_resources.core.user_service import UserService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keycloak user administration")
    parser.add_argument("--kc-url", default=os.environ.get("KEYCLOAK_URL", "http://localhost:8080"))
    parser.add_argument("--realm", default=os.environ.get("KEYCLOAK_REALM", DEFAULT_REALM))
    parser.add_argument("--auth-realm", default=os.environ.get("KEYCLOAK_SERVICE_REALM", "master"))
    parser.add_argument("--svc-client-id", default=os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "backend-resources"))
    parser.add_argument("--svc-client-secret", default=os.environ.get("KEYCLOAK_SERVICE_CLIENT_SECRET"))
    parser.add_argument("--admin-user", default=os.environ.get("KEYCLOAK_ADMIN"))
    parser.add_argument("--admin-pass", default=os.environ.get("KEYCLOAK_ADMIN_PASSWORD"))
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd")

    sc = sub.add_parser("create")
    sc.add_argument("--username", required=True)
    sc.add_argument("--email", required=True)
    sc.add_argument("--password", required=True)
    sc.add_argument("--first", default="")
    sc.add_argument("--last", default="")

    sg = sub.add_parser("get")
    sg.add_argument("--id", required=True)

    ss = sub.add_parser("search")
    ss.add_argument("--username", required=True)

    sd = sub.add_parser("delete")
    sd.add_argument("--id", required=True)

    return parser


def build_client(parser: argparse.ArgumentParser, args: argparse.Namespace) -> KeycloakClient:
    """Keycloak client using the service account when a secret is given, else admin credentials."""
    client = KeycloakClient(args.kc_url)
    if args.svc_client_secret:
        client.configure_service_account(args.auth_realm, args.svc_client_id, args.svc_client_secret)
    elif args.admin_user and args.admin_pass:
        client.configure_admin(args.admin_user, args.admin_pass)
    else:
        parser.error("Missing credentials: provide --svc-client-secret or --admin-user/--admin-pass")
    return client


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    admin = KeycloakUserAdmin(build_client(parser, args))
    service = UserService(admin, realm=args.realm)

    try:
        if args.cmd == "create":
            user_request = validators.parse_user_request({
                "username": args.username,
                "email": args.email,
                "password": args.password,
                "firstName": args.first,
                "lastName": args.last,
            })
            service.create_user(user_request, operator=args.operator)
            print(f"[create] User '{args.username}' created in realm '{args.realm}'")
        elif args.cmd == "get":
            user = service.get_user_by_id(validators.parse_user_id(args.id))
            print(json.dumps(user.to_dict(), indent=2))
        elif args.cmd == "search":
            matches = admin.search_users(args.realm, args.username)
            print(json.dumps(
                [{"id": u.get("id"), "username": u.get("username"), "email": u.get("email")} for u in matches],
                indent=2,
            ))
        elif args.cmd == "delete":
            admin.delete_user(args.realm, args.id)
            audit.safe_log_user_event(
                "delete_user", args.id, operator=args.operator, realm=args.realm,
                details={"user_id": args.id},
            )
            print(f"[delete] User {args.id} deleted from realm '{args.realm}'")
    except ValidationError as e:
        for field, message in e.errors.items():
            print(f"[{args.cmd}] {field}: {message}", file=sys.stderr)
        sys.exit(1)
    except BackendResourcesError as e:
        print(f"[{args.cmd}] Error ({e.status}): {e.message}", file=sys.stderr)
        sys.exit(1)
    except (KeycloakError, requests.RequestException) as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

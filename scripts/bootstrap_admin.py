#!/usr/bin/env python3
"""Emit SQL that creates or promotes an admin account (admins cannot self-register)."""

from __future__ import annotations

import argparse

from passlib.hash import pbkdf2_sha256


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(
    *,
    user_id: int | None,
    email: str | None,
    password: str | None,
    full_name: str | None,
    actor: str,
) -> str:
    actor_value = _quote_sql(actor)

    if user_id is not None:
        target = f"""update users
  set role = 'admin', account_status = 'active', updated_at = now()
  where id = {int(user_id)}
  returning id"""
    elif email is None:
        raise ValueError("either user_id or email is required")
    elif password:
        password_hash = _quote_sql(pbkdf2_sha256.hash(password))
        name_value = _quote_sql(full_name or "Administrator")
        target = f"""insert into users (email, password_hash, full_name, role)
  values ({_quote_sql(email.lower())}, {password_hash}, {name_value}, 'admin')
  on conflict ((lower(email))) do update
    set role = 'admin', account_status = 'active', updated_at = now()
  returning id"""
    else:
        target = f"""update users
  set role = 'admin', account_status = 'active', updated_at = now()
  where lower(email) = lower({_quote_sql(email)})
  returning id"""

    return f"""-- hirelane admin bootstrap SQL
-- Run against the application database with a privileged role.

with admin_user as (
  {target}
)
insert into status_events (entity_type, entity_id, event_type, to_status, note)
select 'user', id, 'admin_bootstrap', 'admin', {actor_value}
from admin_user;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to create or promote a hirelane admin account.")
    identity_group = parser.add_mutually_exclusive_group(required=True)
    identity_group.add_argument("--user-id", type=int, help="Existing users.id to promote")
    identity_group.add_argument("--email", help="Email of the account to promote or create")
    parser.add_argument("--password", help="Create the account with this password when it does not exist")
    parser.add_argument("--full-name", help="Display name for a newly created account")
    parser.add_argument(
        "--actor",
        default="system",
        help="Actor label recorded on the audit event",
    )
    args = parser.parse_args()
    if args.password and not args.email:
        parser.error("--password requires --email")

    print(
        render_sql(
            user_id=args.user_id,
            email=args.email,
            password=args.password,
            full_name=args.full_name,
            actor=args.actor,
        )
    )


if __name__ == "__main__":
    main()

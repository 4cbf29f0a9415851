"""CLI script to create an admin account or promote an existing user.
Usage: python scripts/create_admin.py USERNAME [--password PASSWORD] [--email EMAIL]
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `quiz_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from quiz_api.database import engine, create_db_and_tables
from quiz_api import models, services
from quiz_api.errors import QuizAppError


def main(username: str, password: Optional[str] = None, email: Optional[str] = None) -> int:
    """Promote `username` to admin, creating the account when a password is given."""
    create_db_and_tables()
    with Session(engine) as session:
        svc = services.AuthService(session)
        try:
            if password:
                user = svc.register(username, password, email=email, role=models.ROLE_ADMIN)
                print(f'Created admin {user.username} (id {user.id})')
            else:
                user = svc.promote_to_admin(username)
                print(f'Promoted {user.username} (id {user.id}) to admin')
        except QuizAppError as e:
            print(f'Error: {e.message}')
            return 1
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('--password', help='Create a new admin account with this password')
    parser.add_argument('--email')
    args = parser.parse_args()
    sys.exit(main(args.username, password=args.password, email=args.email))

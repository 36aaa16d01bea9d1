import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.accounts import AccountService, Registration
from app.config import load_settings
from app.errors import PortalError
from app.passwords import PasswordHasher
from app.sessions import SessionManager
from app.storage import open_store

PASSWORD_MIN_LENGTH = 8


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register an alumni portal account")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument("--graduation-year", type=int, default=None, help="Graduation year")
    parser.add_argument("--major", default=None, help="Field of study")
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < PASSWORD_MIN_LENGTH:
            print(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings()
    store = open_store(settings)
    accounts = AccountService(
        store,
        PasswordHasher(rounds=settings.hash_rounds),
        SessionManager(ttl=settings.session_ttl),
    )

    try:
        account = accounts.register(
            Registration(
                name=args.name,
                email=args.email,
                password=password,
                graduation_year=args.graduation_year,
                major=args.major,
            )
        )
    except PortalError as exc:  # duplicates, missing fields, storage failures
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"Created user #{account.id}: {account.name} <{account.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

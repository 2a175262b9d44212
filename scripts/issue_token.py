"""Print a bearer token for a user id, for local testing against the API."""
import argparse
from datetime import timedelta

from app.auth import create_access_token


def main():
    parser = argparse.ArgumentParser(description="Issue a bearer token for a user id")
    parser.add_argument("user_id", help="User identifier placed in the token's sub claim")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token(args.user_id, expires))


if __name__ == "__main__":
    main()

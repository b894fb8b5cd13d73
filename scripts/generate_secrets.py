#!/usr/bin/env python3
"""Generate the secrets drive-monitor reads from the environment."""

from cryptography.fernet import Fernet


def generate_secrets() -> dict:
    """Return freshly generated values keyed by environment variable."""
    return {"ENCRYPTION_KEY": Fernet.generate_key().decode()}


def main() -> None:
    print("=" * 60)
    print("drive-monitor Secret Generator")
    print("=" * 60)
    print("\nCopy these values to your .env file:\n")

    for name, value in generate_secrets().items():
        print(f"{name}={value}")

    print("\n" + "=" * 60)
    print("⚠️  Keep these values secure and never commit them to git!")
    print("   Changing ENCRYPTION_KEY discards the saved browser session.")
    print("=" * 60)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Log in to the platform once and save the session for InfluenceSnap.

Run this interactively when an ingest run fails with a challenge or
two-factor prompt. Later ingest runs reuse the saved session and device
fingerprint without logging in again.
"""

import getpass
import sys

from influencesnap.core.auth import Authenticator, Credentials
from influencesnap.core.exceptions import AuthError, AuthFailure
from influencesnap.utils import config


def login() -> int:
    """Log in, prompting for a two-factor code if required."""
    print("\n" + "="*60)
    print("InfluenceSnap - Platform Login")
    print("="*60 + "\n")
    
    username = config.IG_USERNAME or input("Username: ").strip()
    if not username:
        print("❌ Username required")
        return 1
    
    password = config.IG_PASSWORD or getpass.getpass("Password: ")
    if not password:
        print("❌ Password required")
        return 1
    
    authenticator = Authenticator()
    credentials = Credentials(username=username, password=password)
    
    def ask_code() -> str:
        print("\n🔐 Two-factor authentication required")
        return input("Enter 2FA code: ")
    
    print("\n🔄 Logging in...")
    try:
        session = authenticator.establish_session(credentials, two_factor_prompt=ask_code)
    except AuthError as e:
        if e.reason is AuthFailure.CHALLENGE_REQUIRED:
            print("\n⚠️  The platform wants a security check. Confirm the login in the app, then run this again.")
        print(f"\n❌ ERROR: {e}")
        return 1
    
    with session:
        print(f"\n✅ SUCCESS! Session saved for {session.username}")
        print(f"   User agent: {session.fingerprint.user_agent}\n")
    return 0


if __name__ == "__main__":
    sys.exit(login())

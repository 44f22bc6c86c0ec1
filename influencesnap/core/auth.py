"""Platform authentication with persisted device fingerprint and session."""

import hashlib
import json
import pickle
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import instaloader
from cryptography.fernet import Fernet, InvalidToken

from influencesnap.core.exceptions import AuthError, AuthFailure
from influencesnap.utils.config import SESSION_DIR, USER_AGENTS
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Credentials:
    """Platform login credentials."""
    username: str
    password: str


@dataclass
class DeviceFingerprint:
    """
    Client identity presented to the platform, stable per username.
    
    The user agent is the whole identity: it is the only client attribute
    instaloader sends, so it is what must stay the same across runs.
    """
    user_agent: str
    
    @classmethod
    def derive(cls, username: str) -> "DeviceFingerprint":
        """Derive a fingerprint deterministically from the username."""
        digest = hashlib.sha256(username.casefold().encode("utf-8")).hexdigest()
        return cls(user_agent=USER_AGENTS[int(digest[:8], 16) % len(USER_AGENTS)])


class PlatformSession:
    """
    Authenticated state against the platform.
    
    Created by Authenticator.establish_session, passed to the fetcher for
    the duration of one run, then released with close().
    """
    
    def __init__(self, loader: instaloader.Instaloader, username: str, fingerprint: DeviceFingerprint):
        self.loader = loader
        self.username = username
        self.fingerprint = fingerprint
        self.closed = False
    
    @property
    def context(self) -> instaloader.InstaloaderContext:
        """Instaloader context used for profile and feed queries."""
        return self.loader.context
    
    def close(self) -> None:
        """Release the underlying HTTP session."""
        if not self.closed:
            self.loader.close()
            self.closed = True
            logger.debug(f"Closed platform session for {self.username}")
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class Authenticator:
    """
    Establishes platform sessions.
    
    The device fingerprint and the session cookies are stored per
    username in the session directory, so repeated runs present the same
    client and skip the login flow while the saved session is valid.
    """
    
    def __init__(
        self,
        session_dir: Path = SESSION_DIR,
        loader_factory: Callable[..., instaloader.Instaloader] = instaloader.Instaloader,
    ):
        """
        Initialize authenticator.
        
        Args:
            session_dir: Directory for fingerprints, session files and the key
            loader_factory: Callable building an Instaloader instance
        """
        self.session_dir = session_dir
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.loader_factory = loader_factory
    
    def _fingerprint_file(self, username: str) -> Path:
        return self.session_dir / f"{username}.device"
    
    def _session_file(self, username: str) -> Path:
        return self.session_dir / f"{username}_session.enc"
    
    def _fernet(self) -> Fernet:
        """Get or create the key used to encrypt saved sessions."""
        key_file = self.session_dir / ".key"
        if key_file.exists():
            return Fernet(key_file.read_bytes())
        
        key = Fernet.generate_key()
        key_file.write_bytes(key)
        try:
            key_file.chmod(0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {key_file}")
        return Fernet(key)
    
    def load_fingerprint(self, username: str) -> DeviceFingerprint:
        """
        Load the stored fingerprint for a username, creating it on first use.
        
        Args:
            username: Credential identity
        
        Returns:
            DeviceFingerprint reused across invocations
        """
        path = self._fingerprint_file(username)
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                return DeviceFingerprint(user_agent=data["user_agent"])
            except (ValueError, KeyError) as e:
                logger.warning(f"Ignoring unreadable fingerprint file {path}: {e}")
        
        fingerprint = DeviceFingerprint.derive(username)
        path.write_text(
            json.dumps({"user_agent": fingerprint.user_agent}),
            encoding="utf-8",
        )
        logger.info(f"Created device fingerprint for {username}: {fingerprint.user_agent}")
        return fingerprint
    
    def _restore_session(self, loader: instaloader.Instaloader, username: str) -> bool:
        """Load saved cookies into the loader. Returns True if they are still valid."""
        path = self._session_file(username)
        if not path.exists():
            return False
        
        try:
            cookies = pickle.loads(self._fernet().decrypt(path.read_bytes()))
        except (InvalidToken, pickle.UnpicklingError, EOFError) as e:
            logger.warning(f"Discarding unreadable session file {path}: {e}")
            return False
        
        loader.context.load_session(username, cookies)
        if (loader.test_login() or "").casefold() == username:
            logger.info(f"Reusing saved session for {username}")
            return True
        
        logger.info(f"Saved session for {username} expired, logging in again")
        return False
    
    def _save_session(self, loader: instaloader.Instaloader, username: str) -> None:
        path = self._session_file(username)
        path.write_bytes(self._fernet().encrypt(pickle.dumps(loader.context.save_session())))
        try:
            path.chmod(0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {path}")
        logger.debug(f"Session saved to: {path}")
    
    def establish_session(
        self,
        credentials: Credentials,
        two_factor_prompt: Optional[Callable[[], str]] = None,
    ) -> PlatformSession:
        """
        Authenticate against the platform.
        
        Platform usernames are case-insensitive, so the saved fingerprint and
        session are keyed by the casefolded username.
        
        Args:
            credentials: Username and password
            two_factor_prompt: Called for the code when the login asks for
                two-factor authentication. The code is sent on the same
                pending login, without repeating the password step.
        
        Returns:
            PlatformSession ready for profile queries
        
        Raises:
            AuthError: With reason INVALID, RATE_LIMITED or CHALLENGE_REQUIRED
        """
        username = credentials.username.strip().casefold()
        fingerprint = self.load_fingerprint(username)
        
        loader = self.loader_factory(
            download_pictures=False,
            download_videos=False,
            download_video_thumbnails=False,
            download_geotags=False,
            download_comments=False,
            save_metadata=False,
            compress_json=False,
            quiet=True,
            user_agent=fingerprint.user_agent,
            max_connection_attempts=1,
        )
        
        try:
            if not self._restore_session(loader, username):
                try:
                    loader.login(username, credentials.password)
                except instaloader.exceptions.TwoFactorAuthRequiredException:
                    if two_factor_prompt is None:
                        raise
                    logger.info(f"Two-factor code requested for {username}")
                    loader.two_factor_login(two_factor_prompt().strip())
                self._save_session(loader, username)
        except instaloader.exceptions.TwoFactorAuthRequiredException:
            loader.close()
            raise AuthError(AuthFailure.CHALLENGE_REQUIRED, f"Two-factor authentication required for {username}")
        except (instaloader.exceptions.BadCredentialsException, instaloader.exceptions.InvalidArgumentException) as e:
            loader.close()
            raise AuthError(AuthFailure.INVALID, f"Invalid credentials for {username}: {e}")
        except instaloader.exceptions.TooManyRequestsException as e:
            loader.close()
            raise AuthError(AuthFailure.RATE_LIMITED, f"Rate limited while logging in: {e}")
        except (instaloader.exceptions.LoginException, instaloader.exceptions.ConnectionException) as e:
            loader.close()
            error_msg = str(e).lower()
            if "checkpoint" in error_msg or "challenge" in error_msg:
                raise AuthError(AuthFailure.CHALLENGE_REQUIRED, f"Login challenge required: {e}")
            elif "429" in error_msg or "wait a few minutes" in error_msg:
                raise AuthError(AuthFailure.RATE_LIMITED, f"Rate limited while logging in: {e}")
            raise AuthError(AuthFailure.INVALID, f"Login failed: {e}")
        
        logger.info(f"✅ Logged in as {username}")
        return PlatformSession(loader, username, fingerprint)

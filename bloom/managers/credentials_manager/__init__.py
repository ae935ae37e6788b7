"""
Credentials Manager Package

Resolves session credentials for an instance before it connects.

Structure:
- main.py: CredentialsManager (local file -> store -> remote token -> QR)
- utils.py: creds.json helpers and remote token parsing
"""

from .main import CredentialsManager, CredentialSource
from .utils import CREDS_FILENAME, parse_session_token

__all__ = ['CredentialsManager', 'CredentialSource', 'CREDS_FILENAME', 'parse_session_token']

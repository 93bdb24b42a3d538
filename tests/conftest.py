"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Keep logs and config files out of the real home directory
os.environ.setdefault("MAILGATE_HOME", tempfile.mkdtemp(prefix="mailgate-tests-"))

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from mailgate.security import rsa_encrypt
from mailgate.utils.config_manager import AccountConfig, RetryConfig


@pytest.fixture(scope="session")
def rsa_key_pair():
    """A throwaway 2048-bit key pair and its public PEM"""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_key, public_pem


@pytest.fixture
def account():
    """Account settings with test credentials"""
    return AccountConfig(
        imap_server="imap.test.com",
        imap_port=993,
        email="test@example.com",
        password="testpass",
    )


@pytest.fixture
def retry_config():
    """Three attempts with the default 2 second backoff unit"""
    return RetryConfig(max_attempts=3, backoff_unit=2.0)


@pytest.fixture(autouse=True)
def reset_shared_encryptor():
    """Make sure every test starts without a cached encryptor"""
    rsa_encrypt.reset_encryptor()
    yield
    rsa_encrypt.reset_encryptor()

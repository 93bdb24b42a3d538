from .rsa_encrypt import (
    PUBLIC_KEY,
    PasswordEncryptor,
    encrypt_password_rsa,
    encrypt_password_rsa_sync,
    get_encryptor,
)

__all__ = [
    "PUBLIC_KEY",
    "PasswordEncryptor",
    "encrypt_password_rsa",
    "encrypt_password_rsa_sync",
    "get_encryptor",
]

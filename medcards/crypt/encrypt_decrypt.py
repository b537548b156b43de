import base64
import hashlib

import bcrypt

BCRYPT_ROUNDS = 10


def _prehash(text: str) -> bytes:
    # bcrypt reads at most 72 bytes; a base64 SHA-256 digest is 44
    return base64.b64encode(hashlib.sha256(text.encode("utf-8")).digest())


class EncryptionDec:
    """
    bcrypt helpers for account passwords.

    Passwords are SHA-256 digested before bcrypt, so every byte of a long
    password counts and no length is rejected. Only hashes are stored.
    Login never reveals whether an e-mail exists: a miss still pays for one
    bcrypt comparison through `burn_check`.
    """

    _decoy_hash = None

    def hash_password(self, text: str) -> str:
        """
        Hash `text` with a fresh salt.

        Returns
        -------
        str
            The ``$2b$...`` hash as text, ready for the ``password`` column.
        """
        digest = bcrypt.hashpw(_prehash(text), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
        return digest.decode("utf-8")

    def check_passwords(self, plain_text: str, passwd: str) -> bool:
        """True when `plain_text` matches the stored hash `passwd`."""
        try:
            return bcrypt.checkpw(_prehash(plain_text), passwd.encode("utf-8"))
        except ValueError:
            # stored value is not a bcrypt hash
            return False

    def burn_check(self, plain_text: str) -> bool:
        """Spend one comparison against a decoy hash; always False."""
        if EncryptionDec._decoy_hash is None:
            EncryptionDec._decoy_hash = self.hash_password("decoy")
        self.check_passwords(plain_text, EncryptionDec._decoy_hash)
        return False

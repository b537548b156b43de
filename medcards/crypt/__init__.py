"""
Password handling for MedCards accounts.

- encrypt_decrypt.EncryptionDec
    * `hash_password` / `check_passwords`: bcrypt hash and verify
    * `burn_check`: decoy comparison so a login for an unknown e-mail costs
      as much as a wrong password
"""

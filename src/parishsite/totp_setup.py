"""Generate a TOTP secret for the admin's authenticator app.

Put the printed secret into ``PARISHSITE_ADMIN_TOTP_SECRET`` and scan the
provisioning URI (or type the secret) into the authenticator.
"""

import sys

import pyotp

ISSUER = "Parish Site"


def main() -> None:
    account = sys.argv[1] if len(sys.argv) > 1 else "admin"
    secret = pyotp.random_base32()
    uri = pyotp.TOTP(secret).provisioning_uri(name=account, issuer_name=ISSUER)

    print("Base32 secret (set as PARISHSITE_ADMIN_TOTP_SECRET):")
    print(secret)
    print()
    print("Provisioning URI:")
    print(uri)


if __name__ == "__main__":
    main()

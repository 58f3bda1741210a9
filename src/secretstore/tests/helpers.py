import base64
import shutil
import subprocess

import pytest

from secretstore import CryptoBackendError
from secretstore.encryption import CryptoBackend, Decrypted

FAKE_HEADER = b"-----BEGIN FAKE MESSAGE-----\n"

GPG = shutil.which("gpg2") or shutil.which("gpg")
GPG_TEST_ARGS = ["--batch", "--pinentry-mode", "loopback", "--passphrase", ""]

requires_gpg = pytest.mark.skipif(GPG is None, reason="gpg is not installed")


class FakeBackend(CryptoBackend):
    """Reversible stand-in for gpg that reports configurable key ids."""

    def __init__(self, signer="A" * 40, decrypter=None, fail=False):
        self.signer = signer
        self.decrypter = signer if decrypter is None else decrypter
        self.fail = fail
        self.calls = []

    def sign_and_encrypt(self, plaintext):
        self.calls.append(("sign_and_encrypt", plaintext))
        if self.fail:
            raise CryptoBackendError.from_context(
                ["gpg", "--sign", "--encrypt"],
                2,
                b"gpg: no default secret key: No secret key\n",
            )
        return FAKE_HEADER + base64.b64encode(plaintext) + b"\n"

    def decrypt_and_verify(self, ciphertext):
        self.calls.append(("decrypt_and_verify", ciphertext))
        if self.fail or not ciphertext.startswith(FAKE_HEADER):
            raise CryptoBackendError.from_context(
                ["gpg", "--decrypt"],
                2,
                b"gpg: decryption failed: No secret key\n",
            )
        plaintext = base64.b64decode(ciphertext[len(FAKE_HEADER):])
        return Decrypted(plaintext, self.signer, self.decrypter)


def generate_key(uid):
    """Create a passphrase-less key pair and return its fingerprint."""
    subprocess.run(
        [GPG]
        + GPG_TEST_ARGS
        + ["--quick-gen-key", uid, "default", "default", "never"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=True,
    )
    listing = subprocess.run(
        [GPG, "--batch", "--with-colons", "--list-secret-keys", uid],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=True,
    ).stdout.decode("ascii")
    for line in listing.splitlines():
        if line.startswith("fpr:"):
            return line.split(":")[9]
    raise AssertionError(f"No fingerprint found for {uid}")


def gpg_encrypt(plaintext, recipient, signer=None):
    """Encrypt outside of secretstore, optionally signing with another key."""
    args = [GPG] + GPG_TEST_ARGS + ["--armor", "--encrypt", "-r", recipient]
    if signer:
        args.extend(["--sign", "--local-user", signer])
    return subprocess.run(
        args,
        input=plaintext,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=True,
    ).stdout

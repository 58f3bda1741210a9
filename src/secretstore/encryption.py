import subprocess
import tempfile
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from secretstore import BackendUnavailableError, CryptoBackendError
from secretstore._output import output

STATUS_PREFIX = "[GNUPG:]"


class Decrypted(NamedTuple):
    plaintext: bytes
    signer_key_id: str
    decrypt_key_id: str


class CryptoBackend:
    """The cryptographic identity the store is signed and encrypted with."""

    def sign_and_encrypt(self, plaintext: bytes) -> bytes:
        raise NotImplementedError("sign_and_encrypt() not implemented")

    def decrypt_and_verify(self, ciphertext: bytes) -> Decrypted:
        raise NotImplementedError("decrypt_and_verify() not implemented")


def parse_status(lines: Iterable[str]) -> Tuple[str, str]:
    """Extract (signer, decryption key) from gpg's --status-fd output.

    Both are primary key fingerprints: field 12 of ``VALIDSIG`` and field 4
    of ``DECRYPTION_KEY``. Missing lines leave the value empty.

    """
    signer_key_id = ""
    decrypt_key_id = ""
    for line in lines:
        fields = line.rstrip("\n").split(" ")
        if len(fields) < 2 or fields[0] != STATUS_PREFIX:
            continue
        what = fields[1]
        if what == "DECRYPTION_KEY" and len(fields) > 3:
            decrypt_key_id = fields[3]
        elif what == "VALIDSIG" and len(fields) > 11:
            signer_key_id = fields[11]
    return signer_key_id, decrypt_key_id


class GPGBackend(CryptoBackend):

    GPG_BINARY_CANDIDATES = ["gpg2", "gpg"]

    def __init__(
        self,
        gpg_path: Optional[str] = None,
        gpg_args: Sequence[str] = (),
        key_id: Optional[str] = None,
    ):
        self.gpg_path = gpg_path
        self.gpg_args = list(gpg_args)
        if key_id:
            self.gpg_args.extend(["--default-key", key_id])
        self._gpg = None

    def gpg(self) -> str:
        """Return the first gpg binary that answers ``--version``.

        A configured ``gpg_path`` is the only candidate.

        """
        if self._gpg is not None:
            return self._gpg
        candidates = (
            [self.gpg_path] if self.gpg_path else self.GPG_BINARY_CANDIDATES
        )
        with tempfile.TemporaryFile() as null:
            for gpg in candidates:
                args = [gpg, "--version"]
                output.annotate(f"Running `{args}`", debug=True)
                try:
                    subprocess.check_call(args, stdout=null, stderr=null)
                except (subprocess.CalledProcessError, OSError):
                    pass
                else:
                    self._gpg = gpg
                    return self._gpg
        raise BackendUnavailableError.from_context(candidates)

    def _run(self, args: List[str], input: bytes, **kw):
        output.annotate(f"Running `{args}`", debug=True)
        try:
            return subprocess.run(
                args,
                input=input,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                **kw,
            )
        except subprocess.CalledProcessError as e:
            raise CryptoBackendError.from_context(
                e.cmd, e.returncode, e.stderr
            ) from e
        except OSError as e:
            raise BackendUnavailableError.from_context(
                [args[0]], e.strerror
            ) from e

    def sign_and_encrypt(self, plaintext: bytes) -> bytes:
        args = [self.gpg()] + self.gpg_args
        args.extend(
            [
                "--default-recipient-self",
                "-z",
                "9",
                "--armor",
                "--sign",
                "--encrypt",
            ]
        )
        return self._run(args, plaintext).stdout

    def decrypt_and_verify(self, ciphertext: bytes) -> Decrypted:
        with tempfile.TemporaryFile() as status:
            fd = status.fileno()
            args = [self.gpg(), "-q"] + self.gpg_args
            args.extend(
                ["--with-colons", "--status-fd", str(fd), "--decrypt"]
            )
            p = self._run(args, ciphertext, pass_fds=(fd,))
            status.seek(0)
            lines = status.read().decode("utf-8", errors="replace")
        signer_key_id, decrypt_key_id = parse_status(lines.splitlines())
        output.tabular("signed by", signer_key_id or "-", debug=True)
        output.tabular("decrypted", decrypt_key_id or "-", debug=True)
        return Decrypted(p.stdout, signer_key_id, decrypt_key_id)

import os.path
from typing import Optional

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    exitcode: int = 1

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        raise NotImplementedError()


class BackendUnavailableError(ReportingException):
    """No usable gpg binary could be found."""

    candidates: str
    error: Optional[str]

    @classmethod
    def from_context(cls, candidates, error=None):
        self = cls()
        self.candidates = ", ".join("`{}`".format(x) for x in candidates)
        self.error = error
        return self

    def __str__(self):
        message = (
            "Could not find gpg binary. Is GPG installed?"
            " I tried looking for: {}".format(self.candidates)
        )
        if self.error:
            message += " ({})".format(self.error)
        return message

    def report(self):
        output.error(str(self))
        output.tabular(
            "hint", "set SECRETS_GPG_PATH to the gpg binary to use"
        )


class CryptoBackendError(ReportingException):
    """There was an error calling GPG on the secrets store."""

    command: str
    output: str

    @classmethod
    def from_context(cls, command, exitcode, output):
        self = cls()
        self.command = " ".join(command)
        self.exitcode = exitcode
        self.output = output.decode("utf-8", errors="replace")
        return self

    def __str__(self):
        return (
            f"Exitcode {self.exitcode} while calling: "
            f"{self.command}\n{self.output}"
        )

    def report(self):
        output.error("Error while calling GPG")
        output.tabular("command", self.command, red=True)
        output.tabular("exit code", str(self.exitcode))
        output.tabular("message", self.output, separator=":\n")


class UnsignedStoreError(ReportingException):
    """The decrypted store carries no valid signature."""

    path: str

    @classmethod
    def from_context(cls, path):
        self = cls()
        self.path = str(path)
        return self

    def __str__(self):
        return f"{self.path} doesn't appear to be signed"

    def report(self):
        output.error(str(self))


class KeyMismatchError(ReportingException):
    """The store was signed by a different key than it was encrypted for."""

    path: str
    signer_key_id: str
    decrypt_key_id: str

    @classmethod
    def from_context(cls, path, signer_key_id, decrypt_key_id):
        self = cls()
        self.path = str(path)
        self.signer_key_id = signer_key_id
        self.decrypt_key_id = decrypt_key_id
        return self

    def __str__(self):
        return f"different keys used to sign and to encrypt {self.path}"

    def report(self):
        output.error(str(self))
        output.tabular("signed by", self.signer_key_id, red=True)
        output.tabular("decrypted", self.decrypt_key_id or "<unknown>")


class RecordDecodeError(ReportingException):
    """A line of the decrypted store is not a valid record."""

    lineno: int
    reason: str

    @classmethod
    def from_context(cls, lineno, reason):
        self = cls()
        self.lineno = lineno
        self.reason = reason
        return self

    def __str__(self):
        return f"Malformed record on line {self.lineno}: {self.reason}"

    def report(self):
        output.error(str(self))


class ArgumentError(ReportingException):
    """A command was called with the wrong arguments."""

    operation: str
    message: str

    @classmethod
    def from_context(cls, operation, message=None):
        self = cls()
        self.operation = operation
        self.message = (
            message
            or f"incorrect number of arguments for '{self.operation}'"
        )
        return self

    def __str__(self):
        return self.message

    def report(self):
        output.error(str(self))


class StoreAccessError(ReportingException):
    """The store's location cannot be written to."""

    filename: str
    error: str

    @classmethod
    def from_context(cls, filename, error):
        self = cls()
        self.filename = str(filename)
        self.error = error.strerror or str(error)
        return self

    def __str__(self):
        return "Cannot access {}: {}".format(self.filename, self.error)

    def report(self):
        output.error(str(self))


class FileLockedError(ReportingException):
    """A file is already locked and we do not want to block."""

    filename: str

    @classmethod
    def from_context(cls, filename):
        self = cls()
        self.filename = str(filename)
        return self

    def __str__(self):
        return "File already locked: {}".format(self.filename)

    def report(self):
        output.error(str(self))

import fcntl
import os
import pathlib
import tempfile
from typing import Iterable, Iterator

from secretstore import (
    FileLockedError,
    KeyMismatchError,
    StoreAccessError,
    UnsignedStoreError,
)
from secretstore._output import output
from secretstore.codec import Record, iter_records, serialize
from secretstore.encryption import CryptoBackend


class SecretStore:
    """A signed and encrypted secrets file.

    The file is read completely and rewritten completely. Use the store as a
    context manager to hold an advisory lock on ``<path>.lock`` while doing
    so: shared for reading, exclusive if ``writeable`` is set. Locking never
    blocks; a lock held elsewhere raises :class:`FileLockedError`.

    Readers only lock if the lock file already exists and can be opened,
    a reader in a read-only or missing directory proceeds unlocked. A
    writer that cannot create the lock file raises
    :class:`StoreAccessError`.

    """

    def __init__(
        self,
        path: "pathlib.Path",
        backend: CryptoBackend,
        writeable: bool = False,
    ):
        self.path = pathlib.Path(path)
        self.backend = backend
        self.writeable = writeable
        self.fd = None

    @property
    def lock_path(self) -> "pathlib.Path":
        return self.path.with_name(self.path.name + ".lock")

    @property
    def locked(self) -> bool:
        return self.fd is not None

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def __enter__(self):
        self._lock()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._unlock()

    def _lock(self):
        if self.locked:
            raise FileLockedError.from_context(self.path)
        try:
            # Readers never create the lock file.
            self.fd = open(self.lock_path, "a+" if self.writeable else "r")
        except OSError as e:
            if self.writeable:
                raise StoreAccessError.from_context(self.lock_path, e) from e
            output.annotate(
                f"Not locking `{self.lock_path}`: {e.strerror}", debug=True
            )
            return
        output.annotate(f"Locking `{self.lock_path}`", debug=True)
        try:
            fcntl.lockf(
                self.fd,
                fcntl.LOCK_NB  # non-blocking
                | (
                    fcntl.LOCK_EX  # exclusive
                    if self.writeable
                    else fcntl.LOCK_SH  # shared
                ),
            )
        except (BlockingIOError, PermissionError):
            self.fd.close()
            self.fd = None
            raise FileLockedError.from_context(self.path)

    def _unlock(self):
        output.annotate(f"Unlocking `{self.lock_path}`", debug=True)
        if self.fd is not None:
            self.fd.close()
            self.fd = None

    def read(self) -> Iterator[Record]:
        """Decrypt and verify the store and return its records.

        Signature checks happen before this returns, the records themselves
        are decoded lazily.

        """
        if not self.exists:
            output.annotate(
                f"No secrets file at `{self.path}`, starting empty.",
                debug=True,
            )
            return iter(())
        result = self.backend.decrypt_and_verify(self.path.read_bytes())
        if not result.signer_key_id:
            raise UnsignedStoreError.from_context(self.path)
        if result.signer_key_id != result.decrypt_key_id:
            raise KeyMismatchError.from_context(
                self.path, result.signer_key_id, result.decrypt_key_id
            )
        return iter_records(result.plaintext)

    def write(self, records: Iterable[Record]):
        """Encrypt the records and replace the store with them."""
        if not self.locked:
            raise RuntimeError("Store not locked")
        if not self.writeable:
            raise RuntimeError("Store not writeable")
        ciphertext = self.backend.sign_and_encrypt(serialize(records))
        # NamedTemporaryFile creates the file with mode 0600.
        with tempfile.NamedTemporaryFile(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            try:
                f.write(ciphertext)
                f.flush()
                os.fsync(f.fileno())
            except BaseException:
                os.unlink(f.name)
                raise
        try:
            os.replace(f.name, self.path)
        except BaseException:
            os.unlink(f.name)
            raise
        output.annotate(f"Wrote `{self.path}`", debug=True)

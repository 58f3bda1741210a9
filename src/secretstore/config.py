import os
import pathlib
import shlex
from typing import List, Mapping, Optional

from secretstore.encryption import GPGBackend
from secretstore.operations import DEFAULT_DATE_FORMAT

DEFAULT_LIST_FORMAT = "{key:<50} {date}"


class Config(object):
    """Where the store lives and how to talk to gpg."""

    def __init__(
        self,
        path: "pathlib.Path",
        gpg_path: Optional[str] = None,
        gpg_args: Optional[List[str]] = None,
        gpg_key: Optional[str] = None,
        list_format: str = DEFAULT_LIST_FORMAT,
        date_format: str = DEFAULT_DATE_FORMAT,
    ):
        self.path = pathlib.Path(path)
        self.gpg_path = gpg_path
        self.gpg_args = gpg_args or []
        self.gpg_key = gpg_key
        self.list_format = list_format
        self.date_format = date_format

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] = os.environ):
        path = environ.get("SECRETS_PATH") or os.path.join(
            os.path.expanduser("~"), ".secrets"
        )
        return cls(
            path=pathlib.Path(path),
            gpg_path=environ.get("SECRETS_GPG_PATH") or None,
            gpg_args=shlex.split(environ.get("SECRETS_GPG_ARGS", "")),
            gpg_key=environ.get("SECRETS_GPG_KEY") or None,
            list_format=(
                environ.get("SECRETS_LIST_FORMAT") or DEFAULT_LIST_FORMAT
            ),
            date_format=(
                environ.get("SECRETS_DATE_FORMAT") or DEFAULT_DATE_FORMAT
            ),
        )

    def backend(self) -> GPGBackend:
        """Return the gpg backend, failing early if gpg is unusable."""
        backend = GPGBackend(self.gpg_path, self.gpg_args, self.gpg_key)
        backend.gpg()
        return backend

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List

import pydantic

from ..domain.errors import (
    CorruptDataError,
    NotFoundError,
    ProfileNotFoundError,
    StorageError,
    ValidationError,
)
from .models import ActiveState, Profile, dump_profile, parse_profile

logger = logging.getLogger(__name__)

SECURE_FILE_MODE = 0o600

PROFILE_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
NAME_MAX = 255  # bytes per path component on common filesystems
# ".<final name>.<8 random chars>.tmp", as built by write_secure
TEMP_NAME_OVERHEAD = len(".") + len(".") + 8 + len(TEMP_SUFFIX)
MAX_NAME_BYTES = NAME_MAX - TEMP_NAME_OVERHEAD - len(PROFILE_SUFFIX)


def _reason(e: OSError) -> str:
    return e.strerror or str(e)


def read_secure(path: Path) -> bytes:
    """
    read a whole file.

    raises:
        NotFoundError: if nothing exists at path
        StorageError: if the file exists but can't be read
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise NotFoundError(path) from None
    except OSError as e:
        raise StorageError(path, _reason(e)) from e


def write_secure(path: Path, data: bytes) -> None:
    """
    replace path with data, readable and writable by the owner only.

    the bytes go to a 0600 temp file in the same directory which is then
    renamed over the target, so readers see either the old or the new file.

    raises:
        StorageError: if the directory, temp file, or rename fails
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX)
    except OSError as e:
        raise StorageError(path, _reason(e)) from e

    tmp_path = Path(tmp_name)
    try:
        # mkstemp already creates 0600 but be explicit about it
        os.fchmod(fd, SECURE_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException as e:
        tmp_path.unlink(missing_ok=True)
        if isinstance(e, OSError):
            raise StorageError(path, _reason(e)) from e
        raise

    logger.debug(f"wrote {len(data)} bytes to {path}")


def validate_profile_name(name: str) -> None:
    """
    make sure name maps to exactly one path component.

    the limit on length leaves room for the `.json` suffix and for the
    temp file write_secure creates next to it.

    raises:
        ValidationError: for empty names, '.', '..', anything containing a
            separator, or names too long to store
    """
    separators = {"/", "\\", os.sep}
    if os.altsep:
        separators.add(os.altsep)

    if (
        not name
        or name in (".", "..")
        or "\0" in name
        or any(sep in name for sep in separators)
    ):
        raise ValidationError(f"invalid profile name: '{name}'")

    if len(name.encode("utf-8", "surrogatepass")) > MAX_NAME_BYTES:
        raise ValidationError(
            f"invalid profile name: longer than {MAX_NAME_BYTES} bytes"
        )


class ProfileStore:
    """one JSON file per profile under profiles_dir."""

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = profiles_dir

    def path_for(self, name: str) -> Path:
        validate_profile_name(name)
        return self.profiles_dir / f"{name}{PROFILE_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def load(self, name: str) -> Profile:
        """
        load a single profile.

        raises:
            ValidationError: if name is invalid
            ProfileNotFoundError: if no such profile is stored
            CorruptDataError: if the file can't be decoded
            StorageError: if the file exists but can't be read
        """
        path = self.path_for(name)
        try:
            data = read_secure(path)
        except NotFoundError:
            raise ProfileNotFoundError(name, path) from None

        try:
            return parse_profile(data)
        except pydantic.ValidationError as e:
            raise CorruptDataError(path, _summarize(e)) from e

    def save(self, name: str, profile: Profile) -> None:
        write_secure(self.path_for(name), dump_profile(profile))

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise ProfileNotFoundError(name, path) from None
        except OSError as e:
            raise StorageError(path, _reason(e)) from e

    def list_names(self) -> List[str]:
        """sorted names of every stored profile."""
        if not self.profiles_dir.is_dir():
            return []
        try:
            return sorted(
                p.stem for p in self.profiles_dir.iterdir()
                if p.suffix == PROFILE_SUFFIX and p.is_file()
            )
        except OSError as e:
            raise StorageError(self.profiles_dir, _reason(e)) from e


class StateStore:
    """persists ActiveState next to the profiles."""

    def __init__(self, state_file: Path):
        self.state_file = state_file

    def load(self) -> ActiveState:
        """load active state. a missing or malformed file means no active profile."""
        try:
            data = read_secure(self.state_file)
        except NotFoundError:
            return ActiveState()

        try:
            return ActiveState.model_validate_json(data)
        except pydantic.ValidationError as e:
            logger.warning(f"ignoring malformed state file {self.state_file}: {_summarize(e)}")
            return ActiveState()

    def save(self, state: ActiveState) -> None:
        data = json.dumps(state.model_dump(exclude_none=True), indent=2).encode()
        write_secure(self.state_file, data)


def _summarize(error: pydantic.ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "document"
    return f"{location}: {first['msg']}"

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ..errors import ArtifactNotFound, CorruptArtifact
from .base import ArtifactKind, BaseStorage, EpisodeRef, feed_directory_name


logger = logging.getLogger("podlabel.storage")


def _to_jsonable(value: Any) -> Any:
    """Convert records (anything with to_dict) and lists of records to plain JSON."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    return value


def serialize_artifact(value: Any) -> str:
    """Deterministic JSON text: sorted keys, two-space indent, trailing newline."""
    return (
        json.dumps(_to_jsonable(value), indent=2, ensure_ascii=False, sort_keys=True)
        + "\n"
    )


class LocalStorage(BaseStorage):
    """Artifact store on the local filesystem, rooted at the data directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def episode_ref(self, feed_title: Optional[str], episode_id: Any) -> EpisodeRef:
        return EpisodeRef(self.root / feed_directory_name(feed_title), str(episode_id))

    def exists(self, ref: EpisodeRef, kind: ArtifactKind) -> bool:
        try:
            return ref.path_for(kind).is_file()
        except OSError as e:
            logger.debug(f"Treating {ref} {kind.value} as missing: {e}")
            return False

    def read(self, ref: EpisodeRef, kind: ArtifactKind) -> Any:
        path = ref.path_for(kind)
        if kind is ArtifactKind.AUDIO:
            raise ValueError("Audio artifacts are binary and cannot be read as JSON")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise ArtifactNotFound(f"{kind.value} artifact not found: {path}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptArtifact(path, str(e))

    def _replace_atomically(self, path: Path, write_body) -> Path:
        """Write to a temporary sibling file, then rename it over the target."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                write_body(f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
        return path

    def write(self, ref: EpisodeRef, kind: ArtifactKind, value: Any) -> Path:
        payload = serialize_artifact(value).encode("utf-8")
        path = self._replace_atomically(ref.path_for(kind), lambda f: f.write(payload))
        logger.info(f"Saved {kind.value} artifact to {path}")
        return path

    def write_stream(
        self, ref: EpisodeRef, kind: ArtifactKind, chunks: Iterable[bytes]
    ) -> Path:
        def _body(f):
            for chunk in chunks:
                if chunk:
                    f.write(chunk)

        path = self._replace_atomically(ref.path_for(kind), _body)
        logger.info(f"Saved {kind.value} artifact to {path} ({path.stat().st_size:,} bytes)")
        return path

    def append_failure(self, ref: EpisodeRef, log_name: str, note: str) -> Path:
        ref.directory.mkdir(parents=True, exist_ok=True)
        failed_path = ref.directory / log_name
        line = note.replace("\n", " ").replace("\r", " ")
        with open(failed_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        return failed_path

    def read_failures(self, directory: Path, log_name: str) -> List[str]:
        try:
            with open(Path(directory) / log_name, "r", encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f if line.strip()]
        except FileNotFoundError:
            return []

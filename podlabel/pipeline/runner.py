"""
Generic stage driver.

A stage turns one input artifact of an episode into one output artifact. The
runner discovers eligible work by walking the data root (an item is eligible
while its output artifact is absent), runs the stage transform one item at a
time, commits the output through the artifact store and records failures in
the stage's failure log without interrupting the batch.

Usage:
    runner = StageRunner(store, delay_seconds=1.0)
    stats = runner.run_stage(stage, stage.discover(store, data_root), budget=5)
"""

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from ..errors import SkipItem, StageError
from ..logger import log_with_timer
from ..storage import ArtifactKind, BaseStorage, EpisodeRef, classify_artifact


logger = logging.getLogger("podlabel.pipeline")


@dataclass
class WorkItem:
    """
    One unit of work for a stage: an episode plus the artifact it is read from.

    `context` is filled by the transform with whatever it learned about the item
    (title, enclosure URL, ...) so a failure line can be written even when the
    transform fails halfway.
    """

    ref: EpisodeRef
    input_kind: Optional[ArtifactKind] = None
    payload: Any = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_path(self) -> Optional[Path]:
        return self.ref.path_for(self.input_kind) if self.input_kind else None

    @property
    def identifier(self) -> str:
        """File name of the input artifact, or the episode name when there is none."""
        return self.input_path.name if self.input_kind else self.ref.name

    def __str__(self) -> str:
        return f"{self.ref.directory.name}/{self.identifier}"


def is_corrupt_json(path: Path) -> bool:
    try:
        with open(path, "r", encoding="utf-8") as f:
            json.load(f)
        return False
    except (ValueError, UnicodeDecodeError):
        return True
    except OSError:
        return False


def discover(
    root: Path,
    input_kind: ArtifactKind,
    output_kind: Optional[ArtifactKind],
    requires: Sequence[ArtifactKind] = (),
    check_outputs: bool = True,
) -> Iterator[WorkItem]:
    """
    Lazily find episodes whose input artifact exists and whose output is absent.

    Directories and files are visited in sorted order, so re-running discovery
    after an interruption yields the same remaining work. Nothing is written.

    Args:
        root: Data root to walk recursively
        input_kind: Artifact the stage reads
        output_kind: Artifact the stage writes (None: every input is eligible)
        requires: Other artifacts that must exist for the item to be eligible
        check_outputs: Parse existing JSON outputs and re-schedule corrupt ones

    Yields:
        WorkItem for each eligible episode
    """
    root = Path(root)
    if not root.is_dir():
        logger.warning(f"Data directory does not exist: {root}")
        return

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        directory = Path(dirpath)
        for filename in sorted(filenames):
            classified = classify_artifact(filename)
            if classified is None or classified[0] is not input_kind:
                continue
            ref = EpisodeRef(directory, classified[1])

            missing = [kind.value for kind in requires if not ref.path_for(kind).is_file()]
            if missing:
                logger.debug(f"Skipping {ref}: missing {', '.join(missing)}")
                continue

            if output_kind is not None:
                output_path = ref.path_for(output_kind)
                if output_path.is_file():
                    if not (check_outputs and is_corrupt_json(output_path)):
                        continue
                    logger.warning(
                        f"Corrupt {output_kind.value} artifact {output_path}; "
                        f"scheduling it for regeneration"
                    )

            yield WorkItem(ref, input_kind)


class Stage(ABC):
    """
    Base class for pipeline stages.

    Subclasses set the class attributes and implement transform(); the default
    commit() writes the transform result as the output artifact.
    """

    name: str = "stage"
    input_kind: Optional[ArtifactKind] = None
    output_kind: Optional[ArtifactKind] = None
    requires: Sequence[ArtifactKind] = ()
    failure_log: Optional[str] = None
    # Stages backed by a remote service honor the politeness delay
    remote: bool = True

    def discover(self, store: BaseStorage, root: Path) -> Iterable[WorkItem]:
        return discover(root, self.input_kind, self.output_kind, self.requires)

    @abstractmethod
    def transform(self, item: WorkItem) -> Any:
        """Compute the output for one item. May raise; may raise SkipItem."""

    def commit(self, store: BaseStorage, item: WorkItem, output: Any) -> Any:
        return store.write(item.ref, self.output_kind, output)

    def failure_context(self, item: WorkItem) -> List[str]:
        """Extra tab-separated columns written after the identifier in the failure log."""
        return []


@dataclass
class StageResult:
    item: WorkItem
    ok: bool
    output: Any = None
    error: Optional[StageError] = None
    skipped: bool = False


@dataclass
class StageStats:
    stage: str
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[StageError] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.processed + self.failed + self.skipped

    def __str__(self) -> str:
        return (
            f"{self.stage}: {self.processed} processed, {self.failed} failed, "
            f"{self.skipped} skipped"
        )


class StageRunner:
    """Run stages item by item with failure isolation and a politeness delay."""

    def __init__(
        self,
        store: BaseStorage,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def failure_line(self, stage: Stage, item: WorkItem, error: BaseException) -> str:
        columns = [item.identifier, *stage.failure_context(item)]
        columns.append(f"{type(error).__name__}: {error}")
        return "\t".join(" ".join(str(c).split("\t")) for c in columns)

    def run_one(self, item: WorkItem, stage: Stage) -> StageResult:
        """
        Transform and commit one item.

        Never raises: a failure is written to the stage's failure log and
        returned as a StageResult carrying a StageError.
        """
        try:
            output = stage.transform(item)
            stage.commit(self.store, item, output)
        except SkipItem as e:
            logger.info(f"[{stage.name}] Skipping {item}: {e}")
            return StageResult(item, ok=True, skipped=True)
        except Exception as e:
            error = StageError(stage.name, str(item), e)
            logger.error(str(error))
            if stage.failure_log:
                try:
                    self.store.append_failure(
                        item.ref, stage.failure_log, self.failure_line(stage, item, e)
                    )
                except OSError as log_error:
                    logger.error(
                        f"[{stage.name}] Could not record failure of {item} "
                        f"in {stage.failure_log}: {log_error}"
                    )
            return StageResult(item, ok=False, error=error)

        logger.info(f"[{stage.name}] Completed {item}")
        return StageResult(item, ok=True, output=output)

    @log_with_timer("podlabel.pipeline")
    def run_stage(
        self,
        stage: Stage,
        items: Iterable[WorkItem],
        budget: Optional[int] = None,
    ) -> StageStats:
        """
        Run a stage over items until they are exhausted or `budget` items succeed.

        Failed and skipped items do not count toward the budget. Items are pulled
        lazily, so discovery stops as soon as the budget is reached.
        """
        stats = StageStats(stage.name)
        logger.info(
            f"Starting {stage.name} stage"
            + (f" (budget: {budget})" if budget is not None else "")
        )

        for item in items:
            result = self.run_one(item, stage)
            if result.skipped:
                stats.skipped += 1
            elif result.ok:
                stats.processed += 1
            else:
                stats.failed += 1
                stats.errors.append(result.error)

            if stage.remote and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

            if budget is not None and stats.processed >= budget:
                logger.info(f"Budget of {budget} reached for {stage.name} stage")
                break

        logger.info(f"Finished stage {stats}")
        return stats

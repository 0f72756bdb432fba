"""Reads per-phase prompt overrides from ``*.yml``/``*.yaml`` files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

import yaml
from pydantic import ValidationError

from .models import PhasePrompt

logger = logging.getLogger(__name__)

PROMPT_SUFFIXES = (".yml", ".yaml")


class PromptLoader:
    """Collects phase prompt overrides from a list of directories.

    Each file holds one ``PhasePrompt``. A file that cannot be read, decoded
    or validated is skipped with a warning; the remaining phases still load.
    When two directories define the same phase the later directory wins.
    """

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        self._search_paths = [Path(path) for path in (search_paths or [])]
        self.skipped: list[Path] = []

    @property
    def search_paths(self) -> list[Path]:
        return [path for path in self._search_paths if path.is_dir()]

    def _prompt_files(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning(
                "Unable to list prompt directory",
                extra={"path": str(directory), "error": str(exc)},
            )
            return
        for entry in entries:
            if entry.suffix in PROMPT_SUFFIXES and entry.is_file():
                yield entry

    def _read(self, path: Path) -> PhasePrompt | None:
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            logger.warning(
                "Skipping unreadable prompt file",
                extra={"path": str(path), "error": str(exc)},
            )
            self.skipped.append(path)
            return None
        if document is None:
            return None
        try:
            return PhasePrompt.model_validate(document)
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid prompt file",
                extra={"path": str(path), "error": str(exc)},
            )
            self.skipped.append(path)
            return None

    def load_all(self) -> dict[str, PhasePrompt]:
        """Return every valid prompt keyed by phase."""

        self.skipped = []
        prompts: dict[str, PhasePrompt] = {}
        for directory in self.search_paths:
            for path in self._prompt_files(directory):
                prompt = self._read(path)
                if prompt is not None:
                    prompts[prompt.phase] = prompt
        return prompts

    def templates(self) -> dict[str, str]:
        return {phase: prompt.template for phase, prompt in self.load_all().items()}


__all__ = ["PROMPT_SUFFIXES", "PromptLoader"]

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .models import OpenMindednessQuestion, QuizContent

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,79}$")
OPEN_MINDEDNESS_FILE = "open_mindedness.json"


class ContentStore:
    """Read-only access to quiz content by slug."""

    def load(self, slug: str) -> Optional[QuizContent]:
        raise NotImplementedError


class JsonContentStore(ContentStore):
    """Quiz documents stored as `<directory>/quizzes/<slug>.json`.

    The global open-mindedness module lives beside them in
    `<directory>/open_mindedness.json` and is shared by every quiz that
    includes it. Unknown or inactive slugs load as None.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._cache: Dict[str, Optional[QuizContent]] = {}
        self._open_mindedness: Optional[OpenMindednessQuestion] = None
        self._open_mindedness_loaded = False

    def _read_json(self, path: Path) -> Optional[dict]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Failed to read quiz content %s: %s", path, e)
            return None

    def open_mindedness(self) -> Optional[OpenMindednessQuestion]:
        if not self._open_mindedness_loaded:
            data = self._read_json(self.directory / OPEN_MINDEDNESS_FILE)
            self._open_mindedness = OpenMindednessQuestion.from_dict(data) if data else None
            self._open_mindedness_loaded = True
        return self._open_mindedness

    def load(self, slug: str) -> Optional[QuizContent]:
        if not SLUG_PATTERN.match(slug or ""):
            return None
        if slug in self._cache:
            return self._cache[slug]

        data = self._read_json(self.directory / "quizzes" / f"{slug}.json")
        content = None
        if data is None:
            logger.info("Quiz %s not found", slug)
        elif not data.get("is_active", True):
            logger.info("Quiz %s is inactive", slug)
        else:
            try:
                content = QuizContent.from_dict(data, self.open_mindedness())
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Quiz %s has invalid content: %s", slug, e)
        self._cache[slug] = content
        return content

    def clear_cache(self) -> None:
        self._cache.clear()
        self._open_mindedness_loaded = False

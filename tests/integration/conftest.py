import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.analyzers.base import StorageSettings  # noqa: E402
from core.exceptions import LLMError  # noqa: E402
from core.models.thread import Post, Thread  # noqa: E402

NOW_MS = 1_700_000_000_000


def build_thread(
    no: int,
    reply_count: int = 0,
    sub: Optional[str] = None,
    com: str = "opening post",
    replies: Optional[int] = None,
    sticky: bool = False,
    closed: bool = False,
    reply_texts: Optional[List[str]] = None,
) -> Thread:
    """Thread with ``reply_count`` replies numbered ``no + 1`` upwards."""
    texts = reply_texts or []
    posts = [
        Post(no=no + i, resto=no, time=1_700_000_000 + i, com=texts[i - 1] if i <= len(texts) else f"reply {i}")
        for i in range(1, reply_count + 1)
    ]
    return Thread(
        no=no,
        time=1_700_000_000,
        sub=sub,
        com=com,
        replies=reply_count if replies is None else replies,
        sticky=sticky,
        closed=closed,
        posts=posts,
    )


class FakeClock:
    def __init__(self, now_ms: int = NOW_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FakeBoardClient:
    """Async context manager standing in for BoardClient."""

    def __init__(self, catalog: List[Thread], threads: Dict[int, Optional[Thread]]) -> None:
        self.catalog = catalog
        self.threads = threads
        self.fetched: List[int] = []
        self.delays = 0
        self.media_requests: List[int] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> "FakeBoardClient":
        self.entered = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.exited = True

    async def get_catalog(self) -> List[Thread]:
        return list(self.catalog)

    async def get_thread(self, thread_no: int) -> Optional[Thread]:
        self.fetched.append(thread_no)
        return self.threads.get(thread_no)

    async def courtesy_delay(self) -> None:
        self.delays += 1

    async def download_media(self, thread: Thread, dest_dir: Path) -> Optional[Path]:
        self.media_requests.append(thread.no)
        return None


class FakeLLM:
    """
    Scripted completion client.

    ``responder`` gets (system_prompt, user_prompt, purpose) and returns the
    reply text, or raises to simulate a failure.
    """

    def __init__(self, responder: Callable[[str, str, str], str]) -> None:
        self.responder = responder
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        purpose: str = "completion",
    ) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt, "temperature": temperature, "purpose": purpose})
        return self.responder(system_prompt, user_prompt, purpose)

    def purposes(self) -> List[str]:
        return [call["purpose"] for call in self.calls]


def default_llm_response(system_prompt: str, user_prompt: str, purpose: str) -> str:
    if purpose.startswith("classify"):
        count = user_prompt.split("Analyze these ", 1)[1].split(" ", 1)[0]
        return f"1/{count}"
    if purpose.startswith("article"):
        return "HEADLINE: Something Happened Today\nARTICLE: A body of text about what happened."
    if purpose == "overview":
        return "An overview of the day."
    if purpose in ("matrix themes", "overview themes"):
        return '```json\n{"themes": [{"name": "Theme A", "frequency": 40, "keywords": ["a", "b", "c"]}]}\n```'
    if purpose == "overview sentiments":
        return '{"sentiments": [{"name": "Anger", "intensity": 130, "keywords": ["x"]}]}'
    raise LLMError("fake-model", 1, RuntimeError(f"unexpected purpose {purpose}"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def small_settings() -> StorageSettings:
    return StorageSettings(min_free_bytes=0, chunk_threshold_bytes=50 * 1024, max_chunk_files=10, retention_days=3)


@pytest.fixture
def thread_factory():
    return build_thread


@pytest.fixture
def fake_board_client_factory():
    def _factory(catalog: List[Thread], threads: Dict[int, Optional[Thread]]) -> FakeBoardClient:
        return FakeBoardClient(catalog, threads)

    return _factory


@pytest.fixture
def fake_llm_factory():
    def _factory(responder: Optional[Callable[[str, str, str], str]] = None) -> FakeLLM:
        return FakeLLM(responder or default_llm_response)

    return _factory


@pytest.fixture
def default_responder():
    return default_llm_response

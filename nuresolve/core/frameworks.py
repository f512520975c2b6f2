"""Target framework compatibility for nuresolve.

A package manifest groups its dependencies by target framework.  When a
project targeting ``net6.0`` consumes a package declaring groups for
``netstandard2.0`` and ``net472``, only the group of the *nearest*
compatible framework applies.

The :class:`FrameworkResolver` protocol hides how that answer is found.
:class:`NuGetToolsFrameworkResolver` asks the NuGet tools web service and
scrapes the result from its HTML page.  Lookup problems never fail a
resolution; they mean "no compatible framework".
"""

from __future__ import annotations

from html.parser import HTMLParser
from urllib.parse import urlencode
from typing import List, Optional, Protocol, Sequence, Tuple

from nuresolve.utils.http import HTTPClient
from nuresolve.utils.cache import AsyncMemo
from nuresolve.utils.logger import get_logger
from nuresolve.exceptions import NuResolveError
from nuresolve.constants import NEAREST_FRAMEWORK_URL

logger = get_logger("frameworks")

# Public API
__all__ = [
    "FrameworkResolver",
    "NuGetToolsFrameworkResolver",
    "parse_nearest_framework",
]

_NO_MATCH_PREFIX = "None"


class FrameworkResolver(Protocol):
    """Anything able to pick the nearest compatible target framework."""

    async def nearest(self, target: str, candidates: Sequence[str]) -> Optional[str]:
        """Return the member of *candidates* nearest to *target*, or ``None``."""
        ...


class _ResultAlertParser(HTMLParser):
    """Collect the text of the first ``div.alert`` inside a ``div.results``."""

    def __init__(self) -> None:
        super().__init__()
        self.done = False
        self._depth = 0
        self._results_depths: List[int] = []
        self._alert_depth: Optional[int] = None
        self._chunks: List[str] = []

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag != "div" or self.done:
            return

        self._depth += 1
        classes = (dict(attrs).get("class") or "").split()

        if self._alert_depth is None and self._results_depths and "alert" in classes:
            self._alert_depth = self._depth
        if "results" in classes:
            self._results_depths.append(self._depth)

    def handle_endtag(self, tag: str) -> None:
        if tag != "div" or self.done:
            return

        if self._alert_depth == self._depth:
            self.done = True
        if self._results_depths and self._results_depths[-1] == self._depth:
            self._results_depths.pop()
        self._depth -= 1

    def handle_data(self, data: str) -> None:
        if self._alert_depth is not None and not self.done:
            self._chunks.append(data)

    @property
    def text(self) -> str:
        # Collapse whitespace the way a browser renders the element
        return " ".join("".join(self._chunks).split())


def parse_nearest_framework(html: str) -> Optional[str]:
    """Extract the nearest framework from a tools service result page.

    The answer lives in the first alert of the results section, e.g.
    ``"netstandard2.0 (.NETStandard,Version=v2.0)"`` yields the text
    between the parentheses.  A blank alert, or one starting with
    ``None``, means no framework is compatible.

    Example::

        >>> parse_nearest_framework(
        ...     '<div class="results"><div class="alert">Net (net472)</div></div>'
        ... )
        'net472'
    """
    parser = _ResultAlertParser()
    parser.feed(html)
    parser.close()

    text = parser.text
    if not text or text.startswith(_NO_MATCH_PREFIX):
        return None

    return text.split("(", 1)[-1].split(")", 1)[0]


class NuGetToolsFrameworkResolver:
    """Framework resolver backed by the NuGet tools "nearest framework" page.

    Answers are memoized per target and candidate list for the lifetime
    of the instance, failed lookups included.

    Args:
        http_client: Shared :class:`HTTPClient`.
        url: Address of the ``get-nearest-framework`` page.
    """

    def __init__(self, http_client: HTTPClient, url: str = NEAREST_FRAMEWORK_URL) -> None:
        self.http_client = http_client
        self.url = url
        self._results: AsyncMemo[str, Optional[str]] = AsyncMemo("nearest-framework")

    async def nearest(self, target: str, candidates: Sequence[str]) -> Optional[str]:
        if not candidates:
            return None

        key = f"{target}:{', '.join(candidates)}"
        return await self._results.get_or_populate(key, lambda: self._query(target, candidates))

    def query_url(self, target: str, candidates: Sequence[str]) -> str:
        """Return the service URL asking for *target* against *candidates*."""
        query = urlencode({"project": target, "package": "\n".join(candidates)})
        return f"{self.url}?{query}"

    async def _query(self, target: str, candidates: Sequence[str]) -> Optional[str]:
        try:
            html = await self.http_client.get_text(self.query_url(target, candidates))
        except NuResolveError as exc:
            logger.debug("Nearest framework lookup failed: %s", exc)
            return None

        nearest = parse_nearest_framework(html)
        if nearest is None:
            logger.debug(
                "Could not find nearest framework for target framework %s and possible "
                "frameworks %s.",
                target,
                ", ".join(candidates),
            )
        return nearest

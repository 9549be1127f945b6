"""Run statistics and the end-of-run summary."""

import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO


@dataclass
class RunStats:
    """Tracks rows, requests and response codes for one run."""
    rows: int = 0
    requests: int = 0
    status_codes: dict[int, int] = field(default_factory=dict)

    def record_status(self, status_code: int) -> None:
        self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

    @property
    def has_failures(self) -> bool:
        return any(not 200 <= code < 300 for code in self.status_codes)


def report_stats(stats: RunStats, stream: Optional[TextIO] = None) -> None:
    """Print the run summary, with a warning if any response was not 2xx."""
    if stream is None:
        stream = sys.stderr
    print(f"Rows processed: {stats.rows}", file=stream)
    print(f"Requests sent: {stats.requests}", file=stream)
    print("Response codes:", file=stream)
    if not stats.status_codes:
        print("  (none)", file=stream)
    for code in sorted(stats.status_codes):
        print(f"  {code}: {stats.status_codes[code]}", file=stream)
    if stats.has_failures:
        print("WARNING: some requests did not succeed, see the errors above", file=stream)
    stream.flush()

"""
Startup Manager Type Definitions
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

# QR callback: (instance_id, qr_payload)
QrCallback = Callable[[str, str], Awaitable[None]]


@dataclass(frozen=True)
class StartupResult:
    """Outcome of starting one instance"""
    instance_id: str
    success: bool
    error: Optional[str] = None
    credential_source: Optional[str] = None


def summarize_results(results: List[StartupResult]) -> str:
    """'2/3 instances started (failed: bot2)'"""
    started = [r.instance_id for r in results if r.success]
    failed = [r.instance_id for r in results if not r.success]
    summary = f"{len(started)}/{len(results)} instances started"
    if failed:
        summary += f" (failed: {', '.join(failed)})"
    return summary

"""Lead status to progress view for the polling widget."""

from typing import TypedDict

TOTAL_STEPS = 7

STATUS_STEPS: dict[str, tuple[int, str]] = {
    "queued": (0, "In Warteschlange..."),
    "analyzing_performance": (1, "Performance wird analysiert..."),
    "analyzing_seo": (2, "SEO & Sicherheit werden geprüft..."),
    "checking_links": (3, "Links werden überprüft..."),
    "generating_report": (4, "KI erstellt Ihren Bericht..."),
    "saving_results": (5, "Ergebnisse werden gespeichert..."),
    "sending_email": (6, "E-Mail wird versendet..."),
    "completed": (7, "Fertig! E-Mail wurde gesendet."),
    "failed": (-1, "Analyse fehlgeschlagen"),
}


class StatusView(TypedDict):
    status: str
    step: int
    total_steps: int
    label: str
    is_completed: bool
    is_failed: bool


def project_status(status: str | None) -> StatusView:
    """Unknown statuses map to step 0 with the raw status as label."""
    status = status or "queued"
    step, label = STATUS_STEPS.get(status, (0, status))
    return {
        "status": status,
        "step": step,
        "total_steps": TOTAL_STEPS,
        "label": label,
        "is_completed": status == "completed",
        "is_failed": status == "failed",
    }

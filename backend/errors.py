"""Exception types raised across the analysis pipeline."""


class AnalysisError(Exception):
    """Base class for analysis failures."""


class UpstreamError(AnalysisError):
    """An external service (PageSpeed, DataForSEO, Claude) failed after retries."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class LeadNotFoundError(AnalysisError):
    def __init__(self, lead_id: str):
        super().__init__(f"Lead not found: {lead_id}")
        self.lead_id = lead_id


class PipelineError(AnalysisError):
    """Fatal failure of one analysis run. The lead is already marked as failed."""

    def __init__(self, lead_id: str, message: str):
        super().__init__(message)
        self.lead_id = lead_id

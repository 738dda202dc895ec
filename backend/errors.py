"""Error taxonomy shared by the repositories, the aggregation engine and the tool layer."""


class SurveySenseiError(Exception):
    """Base class for failures that are reported back to the caller as `{ok: false}`."""


class InputValidationError(SurveySenseiError):
    """Malformed or missing input, detected before any storage access."""


class SurveyNotFound(SurveySenseiError):
    def __init__(self, survey_id: str):
        self.survey_id = survey_id
        super().__init__(f"Survey not found: {survey_id}")


class StorageFailure(SurveySenseiError):
    """The underlying store failed a read or write. Never retried here."""

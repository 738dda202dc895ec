"""Storage key schema.

Every record of a store instance lives in one flat key space. Kinds are told
apart by a leading tag, and all responses of a survey share a prefix so they
can be enumerated with a single prefix scan:

    survey:<surveyId>
    response:<surveyId>:<responseId>
    counters:<surveyId>

Ids are UUID4 strings, so they never contain the ``:`` separator.
"""

SEPARATOR = ":"
SURVEY_PREFIX = "survey" + SEPARATOR
RESPONSE_TAG = "response"
COUNTERS_TAG = "counters"


def is_valid_id(value) -> bool:
    """True if `value` could have been issued as a survey or response id."""
    return isinstance(value, str) and bool(value) and SEPARATOR not in value


def survey_key(survey_id: str) -> str:
    return SURVEY_PREFIX + survey_id


def response_prefix(survey_id: str) -> str:
    return RESPONSE_TAG + SEPARATOR + survey_id + SEPARATOR


def response_key(survey_id: str, response_id: str) -> str:
    return response_prefix(survey_id) + response_id


def counters_key(survey_id: str) -> str:
    return COUNTERS_TAG + SEPARATOR + survey_id

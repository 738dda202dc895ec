"""Routing of requests to store instances.

A store instance owns one namespace of the key-value table and processes one
tool call at a time. Everything a survey needs (the survey record, its
responses, its counters) lives in the namespace of the instance it was
created in, so callers must keep using the same session id.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
import weakref
from typing import Optional

from aggregation import AggregationEngine
from errors import InputValidationError
from repositories import ResponseRepository, SurveyRepository
from store import SqlKeyValueStore

logger = logging.getLogger(__name__)

SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class SurveyInstance:
    """One logical actor: a store plus the lock that serializes work on it."""

    def __init__(self, instance_id: str, store):
        self.id = instance_id
        self.store = store
        self.lock = threading.RLock()
        self.surveys = SurveyRepository(store)
        self.responses = ResponseRepository(store, self.surveys)
        self.stats = AggregationEngine(store, self.surveys)


class InstanceRegistry:
    """Resolves session ids to `SurveyInstance`s, creating them on first use.

    Instances are held weakly: one lives while a request is using it, so
    concurrent calls on a session share its lock, and an idle one is dropped.
    Recreating it later loses nothing, the records live in the table.

    Args:
        session_factory (sessionmaker): Passed to each instance's store.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._instances: weakref.WeakValueDictionary[str, SurveyInstance] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def __len__(self) -> int:
        return len(self._instances)

    def resolve(self, session_id: Optional[str] = None) -> SurveyInstance:
        """Return the instance for `session_id`, or a brand-new one when it is missing.

        Raises:
            InputValidationError: If the session id has an invalid format.
        """
        if not session_id:
            session_id = uuid.uuid4().hex
        elif not SESSION_ID_RE.match(session_id):
            raise InputValidationError("Invalid sessionId")

        with self._guard:
            instance = self._instances.get(session_id)
            if instance is None:
                store = SqlKeyValueStore(self.session_factory, namespace=session_id)
                instance = SurveyInstance(session_id, store)
                self._instances[session_id] = instance
                logger.info("instance_created", extra={"session_id": session_id})
        return instance

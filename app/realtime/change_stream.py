"""
Change notifications for watched tables.

Every ORM insert, update and delete that reaches a committed transaction is
turned into a change document and queued for consumers of ``watch()``.

Collection happens in two steps on the synchronous Session that backs every
AsyncSession:

- ``after_flush`` records the changes of that flush in ``session.info``
  (attribute history is still available at this point)
- ``after_commit`` moves the recorded changes onto the stream queue, while
  ``after_soft_rollback`` discards them

Change documents look like:

    {
        "operationType": "update",
        "ns": {"coll": "tasks"},
        "documentKey": {"_id": "6f0c..."},
        "updateDescription": {"updatedFields": {"category": "done"}, "removedFields": []},
        "wallTime": "2026-10-19T10:00:00+00:00",
    }

Inserts carry ``fullDocument`` instead of ``updateDescription``; deletes
carry neither.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable

from pydantic.alias_generators import to_camel
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_changes"

Serializer = Callable[[Any], dict]


class ChangeStream:
    def __init__(self):
        self._watched: dict[type, tuple[str, Serializer]] = {}
        self._queue: asyncio.Queue | None = None

    # -- registration -------------------------------------------------------

    def watch_model(self, model: type, collection: str, serializer: Serializer):
        """Emit changes for ``model`` rows, serialized with ``serializer``."""
        self._watched[model] = (collection, serializer)

    def bind(self, session_class: type[Session] = Session):
        """Attach the unit-of-work listeners to ``session_class``."""
        for name, fn in (
            ("after_flush", self._after_flush),
            ("after_commit", self._after_commit),
            ("after_soft_rollback", self._after_soft_rollback),
        ):
            if not event.contains(session_class, name, fn):
                event.listen(session_class, name, fn)

    # -- lifecycle ----------------------------------------------------------

    def start(self):
        """Open the stream. Must be called from the running event loop."""
        self._queue = asyncio.Queue()
        collections = sorted(c for c, _ in self._watched.values())
        logger.info("Change stream opened for %s", collections)

    async def close(self):
        if self._queue is not None:
            # Wake up any consumer blocked in watch()
            self._queue.put_nowait(None)
        self._queue = None

    async def watch(self) -> AsyncIterator[dict]:
        """Yield change documents until the stream is closed."""
        queue = self._queue
        if queue is None:
            raise RuntimeError("Change stream is not open")
        while True:
            change = await queue.get()
            if change is None:
                return
            yield change

    # -- session listeners --------------------------------------------------

    def _after_flush(self, session: Session, flush_context):
        pending = session.info.setdefault(_PENDING_KEY, [])
        for obj in session.new:
            change = self._describe(obj, "insert")
            if change:
                pending.append(change)
        for obj in session.dirty:
            if not session.is_modified(obj, include_collections=False):
                continue
            change = self._describe(obj, "update")
            if change:
                pending.append(change)
        for obj in session.deleted:
            change = self._describe(obj, "delete")
            if change:
                pending.append(change)

    def _after_commit(self, session: Session):
        pending = session.info.pop(_PENDING_KEY, [])
        if not pending:
            return
        if self._queue is None:
            logger.debug("Change stream closed, dropping %d change(s)", len(pending))
            return
        for change in pending:
            self._queue.put_nowait(change)

    def _after_soft_rollback(self, session: Session, previous_transaction):
        session.info.pop(_PENDING_KEY, None)

    # -- documents ----------------------------------------------------------

    def _describe(self, obj: Any, operation: str) -> dict | None:
        watched = self._watched.get(type(obj))
        if watched is None:
            return None
        collection, serializer = watched

        state = inspect(obj)
        key = state.identity[0] if state.identity else getattr(obj, "id", None)
        change = {
            "operationType": operation,
            "ns": {"coll": collection},
            "documentKey": {"_id": str(key)},
            "wallTime": datetime.now(timezone.utc).isoformat(),
        }

        if operation == "insert":
            change["fullDocument"] = serializer(obj)
        elif operation == "update":
            document = serializer(obj)
            updated = {}
            for attr in state.mapper.column_attrs:
                if not state.attrs[attr.key].history.has_changes():
                    continue
                # Field names follow the serialized document
                name = attr.key if attr.key in document else to_camel(attr.key)
                updated[name] = document.get(name)
            if not updated:
                return None
            change["updateDescription"] = {
                "updatedFields": updated,
                "removedFields": [],
            }
        return change


# Change stream instance (singleton per worker)
change_stream = ChangeStream()

"""Firestore-backed letter and user repositories."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from google.api_core.exceptions import FailedPrecondition, GoogleAPICallError
from google.cloud.firestore import DELETE_FIELD, SERVER_TIMESTAMP
from google.cloud.firestore import AsyncClient as FirestoreAsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from lifelog.schema.letters import UNDELIVERED_STATUSES, DeliveryCondition, Letter, LetterStatus, User
from lifelog.storage.contracts import LetterWriteError, StorageError

logger = logging.getLogger(__name__)


class FirestoreLetterRepository:
  """Persist letters as documents in a Firestore collection."""

  def __init__(self, client: FirestoreAsyncClient, *, collection: str = "letters") -> None:
    self._client = client
    self._collection = client.collection(collection)

  async def get(self, letter_id: str) -> Letter | None:
    """Fetch a letter by document id."""
    snapshot = await self._collection.document(letter_id).get()
    if not snapshot.exists:
      return None
    return Letter.from_document(snapshot.id, snapshot.to_dict() or {})

  async def update(self, letter_id: str, fields: dict[str, Any]) -> None:
    """Apply a partial update, mapping client errors to LetterWriteError."""
    try:
      await self._collection.document(letter_id).update(fields)
    except GoogleAPICallError as exc:
      raise LetterWriteError(f"Failed to update letter {letter_id}: {exc}") from exc

  async def query_pending(self) -> AsyncIterator[Letter]:
    """Stream pending letters straight from the query cursor."""
    query = self._collection.where(filter=FieldFilter("status", "==", LetterStatus.PENDING.value))
    async for snapshot in query.stream():
      yield Letter.from_document(snapshot.id, snapshot.to_dict() or {})

  async def query_due(self, now: datetime) -> AsyncIterator[Letter]:
    """Stream due `fixed` then due `random` letters, filtered on the server.

    Each query needs a composite index on (status, deliveryCondition, date field).
    """
    undelivered = sorted(UNDELIVERED_STATUSES)
    for condition, date_field in ((DeliveryCondition.FIXED, "deliveryDate"), (DeliveryCondition.RANDOM, "scheduledDeliveryDate")):
      query = (
        self._collection.where(filter=FieldFilter("status", "in", undelivered))
        .where(filter=FieldFilter("deliveryCondition", "==", condition.value))
        .where(filter=FieldFilter(date_field, "<=", now))
      )
      async for snapshot in query.stream():
        yield Letter.from_document(snapshot.id, snapshot.to_dict() or {})

  async def mark_delivered(self, letter_id: str) -> bool:
    """Transition pending (or legacy scheduled) -> delivered guarded by the snapshot's update time.

    The update carries a `last_update_time` precondition taken from the snapshot that showed the
    letter as undelivered. Any concurrent write in between makes Firestore reject the update with
    FAILED_PRECONDITION, so at most one invocation ever performs the transition and the original
    `deliveredAt` is never overwritten.
    """
    ref = self._collection.document(letter_id)
    try:
      snapshot = await ref.get()
    except GoogleAPICallError as exc:
      raise LetterWriteError(f"Failed to read letter {letter_id} before delivery: {exc}") from exc

    if not snapshot.exists:
      logger.info("Letter %s vanished before delivery; skipping.", letter_id)
      return False

    if (snapshot.to_dict() or {}).get("status") not in UNDELIVERED_STATUSES:
      logger.info("Letter %s is no longer awaiting delivery; skipping.", letter_id)
      return False

    try:
      await ref.update({"status": LetterStatus.DELIVERED.value, "deliveredAt": SERVER_TIMESTAMP}, option=self._client.write_option(last_update_time=snapshot.update_time))
    except FailedPrecondition:
      logger.info("Letter %s changed concurrently; another invocation owns the delivery.", letter_id)
      return False
    except GoogleAPICallError as exc:
      raise LetterWriteError(f"Failed to mark letter {letter_id} delivered: {exc}") from exc

    return True


class FirestoreUserRepository:
  """Read user documents written by the app."""

  def __init__(self, client: FirestoreAsyncClient, *, collection: str = "users") -> None:
    self._collection = client.collection(collection)

  async def get(self, user_id: str) -> User | None:
    """Fetch a user by document id."""
    if not user_id:
      return None
    snapshot = await self._collection.document(user_id).get()
    if not snapshot.exists:
      return None
    return User.from_document(snapshot.id, snapshot.to_dict() or {})

  async def clear_push_token(self, user_id: str) -> None:
    """Delete the fcmToken field so stale tokens are not retried."""
    try:
      await self._collection.document(user_id).update({"fcmToken": DELETE_FIELD})
    except GoogleAPICallError as exc:
      raise StorageError(f"Failed to clear push token for user {user_id}: {exc}") from exc

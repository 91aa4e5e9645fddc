"""Key/value blob store over the ``stored_blob`` table.

Usage::

    store = GameStore()
    store.save('doppelkopf-game-state:<id>', state.model_dump(mode='json'))
    blob = store.load('doppelkopf-game-state:<id>')
"""

import json

from doko import db
from doko.models import StoredBlob
from doko.services.games.errors import MalformedEntry, error_context


class GameStore:
    """save / load / clear of JSON values by key."""

    def save(self, key: str, value) -> None:
        payload = json.dumps(value)
        blob = StoredBlob.query.filter_by(key=key).first()
        if blob is None:
            blob = StoredBlob(key=key, value=payload)
        else:
            blob.value = payload
        db.session.add(blob)
        db.session.commit()

    def load(self, key: str):
        """Decoded value for ``key``, or ``None`` when nothing is stored."""
        blob = StoredBlob.query.filter_by(key=key).first()
        if blob is None:
            return None
        try:
            return json.loads(blob.value)
        except ValueError as exc:
            raise MalformedEntry(
                f'Stored value for {key!r} is not valid JSON',
                error_context('GameStore.load'),
            ) from exc

    def clear(self, key: str) -> None:
        StoredBlob.query.filter_by(key=key).delete()
        db.session.commit()

    def keys(self, prefix: str = ''):
        query = StoredBlob.query
        if prefix:
            query = query.filter(StoredBlob.key.startswith(prefix))
        return [b.key for b in query.order_by(StoredBlob.key).all()]

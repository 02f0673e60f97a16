from __future__ import annotations

import enum
import logging
from typing import Optional

from core.clients.discogs import DiscogsClient
from core.exceptions import ConfigurationError, InvalidStateError
from core.exporters.base import ProductWriter
from core.mapping import default_selection, map_selection
from core.models import ApplyResult, Release, Selection
from core.preview import Preview, build_preview

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PREVIEW_OPEN = "preview_open"
    SUBMITTING = "submitting"


class ImportSession:
    """
    One operator interaction: look a barcode up, review it, submit a selection.

    Only one fetch or submit can be in flight; a new lookup requires the
    previous preview to be closed (submitted or cancelled).
    """

    def __init__(
        self,
        discogs: DiscogsClient,
        writer: Optional[ProductWriter] = None,
        description_template: str = "",
    ) -> None:
        self.discogs = discogs
        self.writer = writer
        self.description_template = description_template
        self.state = SessionState.IDLE
        self.release: Optional[Release] = None
        self.preview: Optional[Preview] = None

    def _require(self, expected: SessionState, action: str) -> None:
        if self.state is not expected:
            raise InvalidStateError(
                f"Cannot {action} while session is {self.state.value} (expected {expected.value})."
            )

    def _open_release(self, action: str) -> Release:
        self._require(SessionState.PREVIEW_OPEN, action)
        if self.release is None:
            raise InvalidStateError(f"Cannot {action}: no release is loaded.")
        return self.release

    def _close(self) -> None:
        self.release = None
        self.preview = None
        self.state = SessionState.IDLE

    def fetch(self, barcode: str) -> Preview:
        self._require(SessionState.IDLE, "fetch")
        self.state = SessionState.FETCHING
        try:
            release = self.discogs.search_barcode(barcode)
        except Exception:
            self.state = SessionState.IDLE
            raise
        self.release = release
        self.preview = build_preview(release, self.description_template)
        self.state = SessionState.PREVIEW_OPEN
        return self.preview

    def cancel(self) -> None:
        self._require(SessionState.PREVIEW_OPEN, "cancel")
        self._close()

    def default_selection(self) -> Selection:
        release = self._open_release("build a selection")
        return default_selection(release, self.description_template)

    def submit(self, product_id: int, selection: Optional[Selection] = None) -> Optional[ApplyResult]:
        """
        Map the selection and write it to the product.

        Returns None, without writing, when nothing was selected. The preview
        is closed either way; on a write error the session returns to idle
        and the error propagates.
        """
        release = self._open_release("submit")

        if selection is None:
            selection = default_selection(release, self.description_template)

        payload = map_selection(release, selection, self.description_template)
        if payload is None:
            logger.info("Nothing selected for product %s; not submitting.", product_id)
            self._close()
            return None

        if self.writer is None:
            raise ConfigurationError("No product writer configured for this session.")

        self.state = SessionState.SUBMITTING
        try:
            return self.writer.apply(product_id, payload)
        finally:
            self._close()

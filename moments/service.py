"""
Moment handlers and action dispatch.

MomentService is stateless between calls: all state lives in the tabular and
blob stores it is constructed with. Every public method returns an envelope
and never raises.
"""

import logging
from typing import Callable, Mapping, Optional

from moments.config import Settings
from moments.errors import DispatchError, ValidationError
from moments.schemas import Envelope, ImageUploaded, MomentCreated, MomentRecord, MomentsList
from moments.storage import BlobStore, TabularStore, Table
from moments.utils import decode_image_data, iso_timestamp, now_millis, parse_rotation

logger = logging.getLogger(__name__)

HEADER = ["ID", "Name", "Message", "Image URL", "Rotation", "Timestamp"]
IMAGE_MIME_TYPE = "image/jpeg"

Params = Mapping[str, str]


def failure(message: str) -> Envelope:
    return Envelope(success=False, message=message)


class MomentService:
    """
    Records moments in a tabular store and images in a blob store.

    Args:
        settings: Store identifiers and image URL template
        tabular_store: Backend holding the moments table
        blob_store: Backend holding uploaded images
    """

    def __init__(self, settings: Settings, tabular_store: TabularStore, blob_store: BlobStore):
        self.settings = settings
        self.tabular_store = tabular_store
        self.blob_store = blob_store

        self._write_actions: dict[str, Callable[[Params], Envelope]] = {
            "addMoment": self.add_moment,
            "uploadImage": self.upload_image,
        }
        self._read_actions: dict[str, Callable[[Params], Envelope]] = {
            "getMoments": lambda params: self.list_moments(),
        }

    # =========================================================================
    # Dispatch
    # =========================================================================

    def handle_write(self, params: Params) -> Envelope:
        """Entry point for POST requests: addMoment, uploadImage."""
        return self._dispatch("write", self._write_actions, params)

    def handle_read(self, params: Params) -> Envelope:
        """Entry point for GET requests: getMoments."""
        return self._dispatch("read", self._read_actions, params)

    def _dispatch(
        self,
        verb: str,
        actions: dict[str, Callable[[Params], Envelope]],
        params: Params,
    ) -> Envelope:
        try:
            action = params.get("action")
            handler = actions.get(action) if action else None
            if handler is None:
                raise DispatchError(f"Unknown {verb} action: {action!r}")
            logger.debug(f"Dispatching {verb} action {action}")
            return handler(params)
        except DispatchError as e:
            logger.warning(str(e))
            return failure("Invalid action")
        except Exception as e:
            logger.error(f"Error in {verb} dispatch: {e}")
            return failure(f"Server error: {e}")

    # =========================================================================
    # Handlers
    # =========================================================================

    def add_moment(self, params: Params) -> Envelope:
        """
        Append one moment row and echo it back.

        Required params: name, message, imageUrl. Optional: rotation (default 0),
        stored as received and echoed back parsed as a float.
        """
        try:
            name = params.get("name")
            message = params.get("message")
            image_url = params.get("imageUrl")
            rotation = params.get("rotation") or 0

            if not name or not message or not image_url:
                raise ValidationError("Missing required fields")

            table = self._moments_table(create=True)

            moment_id = now_millis()
            timestamp = iso_timestamp()
            table.append_row([moment_id, name, message, image_url, rotation, timestamp])
            logger.info(f"Moment added: id={moment_id}, name={name}")

            return MomentCreated(
                success=True,
                id=moment_id,
                name=name,
                message=message,
                image=image_url,
                rotation=parse_rotation(rotation),
                timestamp=timestamp,
            )
        except ValidationError as e:
            logger.warning(f"addMoment rejected: {e}")
            return failure(str(e))
        except Exception as e:
            logger.error(f"Error in addMoment: {e}")
            return failure(f"Error adding moment: {e}")

    def upload_image(self, params: Params) -> Envelope:
        """
        Store a base64 image in the blob folder and return its public URL.

        Required params: imageData (optionally prefixed with a data-URL header).
        Optional: fileName (default moment_<millis>.jpg).
        """
        try:
            image_data = params.get("imageData")
            file_name = params.get("fileName") or f"moment_{now_millis()}.jpg"

            if not image_data:
                raise ValidationError("No image data provided")

            data = decode_image_data(image_data)

            folder = self.blob_store.get_folder(self.settings.DRIVE_FOLDER_ID)
            stored = folder.create_file(data, IMAGE_MIME_TYPE, file_name)
            stored.share_publicly()

            image_url = self.settings.image_url(stored.id)
            logger.info(f"Image uploaded: {file_name} ({len(data)} bytes) as {stored.id}")

            return ImageUploaded(
                success=True,
                message="Image uploaded successfully",
                imageUrl=image_url,
                fileId=stored.id,
            )
        except ValidationError as e:
            logger.warning(f"uploadImage rejected: {e}")
            return failure(str(e))
        except Exception as e:
            logger.error(f"Error in uploadImage: {e}")
            return failure(f"Error uploading image: {e}")

    def list_moments(self) -> Envelope:
        """
        Return every stored moment, most recently appended first.

        Order is storage order reversed; rows are not re-sorted by id or timestamp.
        """
        try:
            table = self._moments_table(create=False)
            if table is None:
                return MomentsList(success=True, message="No moments yet", moments=[])

            rows = table.get_values()

            # First row is the header
            if len(rows) <= 1:
                return MomentsList(success=True, message="No moments yet", moments=[])

            moments = [self._project(row) for row in rows[1:]]
            moments.reverse()
            logger.info(f"Retrieved {len(moments)} moments")

            return MomentsList(
                success=True,
                message="Moments retrieved successfully",
                moments=moments,
            )
        except Exception as e:
            logger.error(f"Error in getMoments: {e}")
            return failure(f"Error fetching moments: {e}")

    # =========================================================================
    # Access check
    # =========================================================================

    def check_access(self) -> Optional[str]:
        """
        Verify both stores are reachable, creating the moments table if missing.

        Returns:
            None when ready, otherwise the reason.
        """
        try:
            self._moments_table(create=True)
        except Exception as e:
            logger.error(f"Tabular store check failed: {e}")
            return f"Tabular store not reachable: {e}"

        try:
            self.blob_store.get_folder(self.settings.DRIVE_FOLDER_ID)
        except Exception as e:
            logger.error(f"Blob store check failed: {e}")
            return f"Blob store not reachable: {e}"

        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _moments_table(self, create: bool) -> Optional[Table]:
        spreadsheet = self.tabular_store.open(self.settings.SPREADSHEET_ID)
        table = spreadsheet.get_table(self.settings.SHEET_NAME)
        if table is None and create:
            table = spreadsheet.create_table(self.settings.SHEET_NAME, HEADER)
            logger.info(f"Created new sheet: {self.settings.SHEET_NAME}")
        return table

    @staticmethod
    def _project(row: list) -> MomentRecord:
        # Trailing empty cells may be omitted by the store
        cells = list(row) + [""] * (len(HEADER) - len(row))
        return MomentRecord(
            id=cells[0],
            name=cells[1],
            message=cells[2],
            image=cells[3],
            rotation=parse_rotation(cells[4]),
        )

"""Document storage: storage backends and the public document host."""

from wizard_core.storage.base_storage import BaseStorage
from wizard_core.storage.document_host import DocumentHost
from wizard_core.storage.minio_storage import MinIOStorage

__all__ = ["BaseStorage", "DocumentHost", "MinIOStorage"]

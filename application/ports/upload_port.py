# application/ports/upload_port.py
from abc import ABC, abstractmethod
from typing import Optional

from application.dto.trim_dto import EncodedArtifact


class IUploadClient(ABC):
    @abstractmethod
    async def create(self, artifact: EncodedArtifact) -> Optional[dict]:
        """Store the artifact remotely under ``artifact.name`` and return the server's reply."""
        pass

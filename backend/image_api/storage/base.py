"""
Base class for image providers.
The upload workflow only talks to this interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ProviderUpload:
    """Result of a direct upload."""
    id: str
    variants: List[str] = field(default_factory=list)


@dataclass
class DirectUpload:
    """One-time upload target issued by the provider."""
    upload_url: str
    id: str


class ImageProvider(ABC):
    """
    Abstract base class for image hosting providers.

    All providers must implement:
    - upload_image(): Store image bytes, return the provider-assigned ID
    - create_direct_upload(): Issue a one-time upload URL
    - get_image_details(): Provider-side metadata
    - delete_image(): Remove an image
    """

    @abstractmethod
    async def upload_image(
        self,
        file_bytes: bytes,
        mime_type: str,
        file_name: str,
        original_name: Optional[str] = None
    ) -> ProviderUpload:
        """
        Upload image bytes.

        Raises:
            ProviderRejectedError: If the provider refuses or fails the upload
        """
        pass

    @abstractmethod
    async def create_direct_upload(self) -> DirectUpload:
        """
        Request a one-time upload target for direct-from-client uploads.

        Raises:
            ProviderRejectedError: If the provider fails the request
        """
        pass

    @abstractmethod
    async def get_image_details(self, image_id: str) -> Dict[str, Any]:
        """
        Raises:
            ProviderNotFoundError: If the provider has no such image
        """
        pass

    @abstractmethod
    async def delete_image(self, image_id: str) -> bool:
        """Returns whether the provider confirmed removal."""
        pass

"""
Activity submission form state.
"""

from dataclasses import dataclass
from typing import Optional

from greyn.client.api_client import ApiClient, ApiResponse


@dataclass
class ProofImageFile:
    filename: str
    content: bytes
    content_type: str


@dataclass
class ActivityDraft:
    """
    The activity form. Submitting is blocked until a proof image is
    attached, and while a previous submit is still in flight.
    """

    type: str = ""
    title: str = ""
    description: str = ""
    proof_image: Optional[ProofImageFile] = None
    is_submitting: bool = False

    @property
    def can_submit(self) -> bool:
        return not self.is_submitting and self.proof_image is not None

    def reset(self) -> None:
        self.type = ""
        self.title = ""
        self.description = ""
        self.proof_image = None

    async def submit(self, client: ApiClient) -> ApiResponse:
        if not self.can_submit:
            message = "Submission in progress" if self.is_submitting else "Proof image is required"
            return ApiResponse.failure(message)

        self.is_submitting = True
        try:
            response = await client.activities.create(
                type=self.type,
                title=self.title,
                description=self.description,
                filename=self.proof_image.filename,
                content=self.proof_image.content,
                content_type=self.proof_image.content_type,
            )
        finally:
            self.is_submitting = False

        if response.success:
            self.reset()
        return response

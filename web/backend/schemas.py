from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChargeRequest(BaseModel):
    """Charge creation body. Fields are optional so absence maps to a 400."""

    model_config = ConfigDict(populate_by_name=True)

    track_name: Optional[str] = Field(default=None, alias="trackName")
    track_id: Optional[str] = Field(default=None, alias="trackId")
    price: Optional[str] = None
    file_key: Optional[str] = Field(default=None, alias="fileKey")

    def missing_fields(self) -> List[str]:
        fields = {
            "trackName": self.track_name,
            "trackId": self.track_id,
            "price": self.price,
            "fileKey": self.file_key,
        }
        return [name for name, value in fields.items() if not value or not value.strip()]


class ChargeResponse(BaseModel):
    hosted_url: str
    code: str


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    charge_code: Optional[str] = Field(default=None, alias="chargeCode")


class DownloadLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    track_name: Optional[str] = Field(default=None, alias="trackName")


class PendingStatus(BaseModel):
    status: str = "pending"
    message: str = "Payment is pending confirmation."


class ErrorResponse(BaseModel):
    error: str


class TrackInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    artist: str
    price: str
    cover_art: Optional[str] = Field(default=None, alias="coverArt")
    has_preview: bool = Field(alias="hasPreview")


class WaveformData(BaseModel):
    version: int = 1
    track_id: str
    points: int
    peaks: List[float]

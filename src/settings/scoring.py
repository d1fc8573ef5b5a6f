"""Audience buzz score aggregation settings."""

from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuzzSettings(BaseSettings):
    """Combined score weighting and designation bands.

    Attributes:
        discourse_weight: Fixed share of the discourse (Reddit) source.
        loving_min: Lowest combined score labelled "Loving".
        liking_min: Lowest combined score labelled "Liking".
        shrugging_min: Lowest combined score labelled "Shrugging".
    """

    discourse_weight: float = Field(default=0.20, gt=0.0, lt=1.0, alias="BUZZ_DISCOURSE_WEIGHT")
    loving_min: int = Field(default=88, ge=0, le=100, alias="BUZZ_LOVING_MIN")
    liking_min: int = Field(default=78, ge=0, le=100, alias="BUZZ_LIKING_MIN")
    shrugging_min: int = Field(default=68, ge=1, le=100, alias="BUZZ_SHRUGGING_MIN")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_bands_ordered(self) -> Self:
        """Designation thresholds must be strictly decreasing."""
        if not self.loving_min > self.liking_min > self.shrugging_min:
            raise ValueError(
                "Designation thresholds must satisfy LOVING > LIKING > SHRUGGING"
            )
        return self

import time
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, Tuple

ProgressKey = Tuple[int, Optional[int]]


def now_ms() -> int:
    return int(time.time() * 1000)


class PlaybackProgress(BaseModel):
    """One playback checkpoint, stored with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    content_id: int = Field(alias="contentId")
    episode_id: Optional[int] = Field(default=None, alias="episodeId")
    progress: float = Field(ge=0, le=100, allow_inf_nan=False)  # percentage watched
    current_time: float = Field(ge=0, allow_inf_nan=False, alias="currentTime")  # seconds
    duration: float = Field(ge=0, allow_inf_nan=False)  # seconds
    timestamp: int = Field(default_factory=now_ms)  # epoch ms of last write

    # Denormalized display data
    content_name: str = Field(default="", alias="contentName")
    content_capa: str = Field(default="", alias="contentCapa")
    content_tipo: str = Field(default="", alias="contentTipo")
    season: Optional[int] = None
    episode: Optional[int] = None

    @field_validator("content_name", "content_capa", "content_tipo", mode="before")
    @classmethod
    def blank_if_null(cls, value):
        # Empty catalog fields arrive as null
        return "" if value is None else value

    @model_validator(mode="after")
    def check_position(self):
        if self.current_time > self.duration:
            raise ValueError("currentTime cannot exceed duration")
        return self

    @property
    def key(self) -> ProgressKey:
        # Episode id 0 is treated the same as no episode
        return (self.content_id, self.episode_id or None)

    @property
    def is_episode(self) -> bool:
        return bool(self.episode_id)

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.duration - self.current_time)

    @property
    def subtitle(self) -> str:
        """Secondary label for cards: season/episode for series, type otherwise."""
        if self.is_episode:
            return f"T{self.season} E{self.episode}"
        return self.content_tipo

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Content(BaseModel):
    """Catalog row from the contents table."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: Optional[str] = Field(default=None, alias="Nome")
    capa: Optional[str] = Field(default=None, alias="Capa")
    tipo: Optional[str] = Field(default=None, alias="Tipo")
    categoria: Optional[str] = Field(default=None, alias="Categoria")
    temporadas: Optional[int] = Field(default=None, alias="Temporadas")


class Episode(BaseModel):
    """Catalog row from the episodes table."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: Optional[str] = Field(default=None, alias="Nome")
    link: Optional[str] = Field(default=None, alias="Link")
    temporada: int = Field(default=1, alias="Temporada")
    numero: int = Field(default=1, alias="Episódio")


class PlaybackUpdate(BaseModel):
    """Player position report; catalog data is looked up server side."""
    model_config = ConfigDict(populate_by_name=True)

    current_time: float = Field(ge=0, allow_inf_nan=False, alias="currentTime")
    duration: float = Field(ge=0, allow_inf_nan=False)
    episode_id: Optional[int] = Field(default=None, alias="episodeId")
    season: Optional[int] = None

import os
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class EngineType(str, Enum):
    WEB = "web"
    TYRANO = "tyrano"
    LEGACY = "legacy"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "EngineType":
        """Tolerant conversion for persisted tags, including the old "exe" tag."""
        if isinstance(value, EngineType):
            return value
        tag = str(value or "").strip().lower()
        if tag == "exe":
            return cls.LEGACY
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


class WindowConfig(BaseModel):
    """Window hints from a game's package.json `window` block."""
    width: Optional[int] = None
    height: Optional[int] = None
    fullscreen: Optional[bool] = None

    class Config:
        extra = "ignore"


class Classification(BaseModel):
    """Result of a successful PathClassifier pass. Internal to the scanner."""
    engine_type: EngineType
    entry_point: str


class GameRecord(BaseModel):
    """
    One game folder in a library snapshot.
    Keyed by folder_path; serialized with camelCase aliases.
    """
    title: str = Field("", alias="title")
    folder_path: str = Field(..., alias="folderPath", description="Absolute path to the game folder")
    entry_point: str = Field("", alias="entryPoint", description="Entry file relative to folder_path")
    icon_path: Optional[str] = Field(None, alias="iconPath")
    window_config: Optional[WindowConfig] = Field(None, alias="windowConfig")
    engine_type: EngineType = Field(EngineType.UNKNOWN, alias="engineType")
    is_slim: bool = Field(False, alias="isSlim", description="No bundled runtime files remain")
    external_id: Optional[str] = Field(None, alias="externalId", description="Product code parsed from the folder name")
    last_modified: float = Field(0.0, alias="lastModified")

    class Config:
        populate_by_name = True
        extra = "ignore"  # Robustness against cache mismatch

    @field_validator("engine_type", mode="before")
    @classmethod
    def _tolerant_engine_type(cls, v):
        return EngineType.parse(v)

    @field_validator("window_config", mode="before")
    @classmethod
    def _tolerant_window_config(cls, v):
        return v if isinstance(v, (dict, WindowConfig)) else None

    @property
    def folder_name(self) -> str:
        return os.path.basename(os.path.normpath(self.folder_path))

    @property
    def entry_path(self) -> str:
        return os.path.join(self.folder_path, *self.entry_point.split("/"))


class LaunchTarget(BaseModel):
    """Everything the launch collaborator needs to open a game."""
    entry_path: str
    engine_type: EngineType
    width: Optional[int] = None
    height: Optional[int] = None
    fullscreen: bool = False


def resolve_launch_target(record: GameRecord, settings) -> LaunchTarget:
    """
    Combine a record's window hints with the default web window from settings.
    Legacy games open their own window, so they carry no hints.
    """
    engine = record.engine_type
    if engine in (EngineType.LEGACY, EngineType.UNKNOWN):
        return LaunchTarget(entry_path=record.entry_path, engine_type=engine)
    if engine not in (EngineType.WEB, EngineType.TYRANO):
        raise ValueError(f"Unhandled engine type: {engine!r}")

    width = settings.web_width
    height = settings.web_height
    fullscreen = settings.web_fullscreen

    window = record.window_config
    if window:
        if window.width:
            width = window.width
        if window.height:
            height = window.height
        if window.fullscreen is not None:
            fullscreen = window.fullscreen

    return LaunchTarget(
        entry_path=record.entry_path,
        engine_type=engine,
        width=width,
        height=height,
        fullscreen=fullscreen,
    )

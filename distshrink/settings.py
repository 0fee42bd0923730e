"""
This module contains the settings of one optimization pass.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from distshrink.errors import ConfigError


class Settings(BaseModel):
    """
    Settings for one optimization pass over a build output tree.

    Attributes:
        extensions (list): File suffixes the pass reads.
        mangle_custom_properties (bool): Rename CSS custom properties.
        mangle_classes (bool): Rename CSS classes.
        mangle_ids (bool): Rename element ids.
        mangle_scope_ids (bool): Rename component scope ids.
        scope_id_prefix (str): Prefix that marks a component scope id.
        custom_property_min_length (int): Custom properties shorter than this
            many bytes (including the leading ``--``) keep their name.
        fold_calc (bool): Fold static ``calc()`` expressions.
        fold_oklch (bool): Fold in-gamut ``oklch()`` colors to hex.
        minify_css (bool): Run stylesheets through rcssmin.
        optimize_shaders (bool): Minify GLSL shader templates in JS.
        max_workers (int): Width of the file-level fan-out, CPU count when unset.
        dry_run (bool): Compute savings without writing any file.
    """

    model_config = ConfigDict(extra="forbid")

    extensions: List[str] = [".html", ".css", ".js"]

    # Renaming
    mangle_custom_properties: bool = True
    mangle_classes: bool = True
    mangle_ids: bool = True
    mangle_scope_ids: bool = True
    scope_id_prefix: str = "astro-cid-"
    custom_property_min_length: int = Field(6, ge=0)

    # Folding and minification
    fold_calc: bool = True
    fold_oklch: bool = True
    minify_css: bool = True
    optimize_shaders: bool = True

    # Execution
    max_workers: Optional[int] = Field(None, ge=1)
    dry_run: bool = False

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, value: List[str]) -> List[str]:
        out = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else "." + ext)
        return out

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None, **overrides) -> "Settings":
        """Read settings from a YAML file; keyword overrides win over the file."""
        data = {}
        if path is not None:
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"cannot read settings from {path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"{path}: expected a mapping at the top level")
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid settings: {exc}") from exc

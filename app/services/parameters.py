"""
Generation parameters: stored presets and the built-in defaults.
"""
from __future__ import annotations

import logging
from typing import Optional

from app.models.database_models import (
    Preset,
    PresetFormat,
    PresetLength,
    PresetOptions,
    PresetStyle,
)
from app.models.schemas import (
    AdditionalOptions,
    FormatOptions,
    LengthOptions,
    ParameterSet,
    PresetCreate,
    StyleOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = ParameterSet()


def resolve_parameters(preset: Optional[Preset]) -> ParameterSet:
    """
    Build the parameter set for a run.

    ``preset`` must have its four sub-records loaded.  A missing preset, or a
    missing sub-record, falls back to the defaults for that part.
    """
    if preset is None:
        return DEFAULT_PARAMETERS

    return ParameterSet(
        format=FormatOptions.model_validate(preset.format) if preset.format else FormatOptions(),
        length=LengthOptions.model_validate(preset.length) if preset.length else LengthOptions(),
        style=StyleOptions.model_validate(preset.style) if preset.style else StyleOptions(),
        options=AdditionalOptions.model_validate(preset.options) if preset.options else AdditionalOptions(),
    )


def apply_preset_data(preset: Preset, data: PresetCreate) -> Preset:
    """
    Write *data* onto *preset*, replacing every sub-record value.

    Used by both create and update, so an update is always a full replacement.
    """
    preset.name = data.name

    if preset.format is None:
        preset.format = PresetFormat()
    preset.format.subheadings = data.format.subheadings
    preset.format.bullet_points = data.format.bullet_points
    preset.format.numbered_list = data.format.numbered_list

    if preset.length is None:
        preset.length = PresetLength()
    preset.length.short = data.length.short
    preset.length.medium = data.length.medium
    preset.length.long = data.length.long
    preset.length.super_long = data.length.super_long

    if preset.style is None:
        preset.style = PresetStyle()
    preset.style.content_tone = data.style.content_tone
    preset.style.writing_style = data.style.writing_style

    if preset.options is None:
        preset.options = PresetOptions()
    preset.options.faq_sections = data.options.faq_sections
    preset.options.summary = data.options.summary

    return preset

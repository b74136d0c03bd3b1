"""Personality configuration loader.

Loads the bot persona from a YAML descriptor file (PERSONALITY_FILE).
A personality defines:
- Name, role, tone and knowledge summary
- Full system prompt
- One system prompt per response mode (fast, standard, deep)
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from src.lib.logging import get_logger
from src.models.intent import ResponseMode

logger = get_logger(__name__)

REQUIRED_FIELDS = ["name", "system_prompt"]


@dataclass(frozen=True)
class Personality:
    """Personality configuration loaded from YAML."""

    name: str
    system_prompt: str
    fast_mode_prompt: str
    standard_mode_prompt: str
    deep_mode_prompt: str
    role: str = ""
    tone: str = ""
    knowledge: str = ""

    def prompt_for(self, mode: ResponseMode) -> str:
        """Return the system prompt for a response mode.

        Unknown modes get the standard prompt.
        """
        if mode is ResponseMode.FAST:
            return self.fast_mode_prompt
        if mode is ResponseMode.DEEP:
            return self.deep_mode_prompt
        return self.standard_mode_prompt


def _text_field(data: dict, field_name: str, yaml_file: Path) -> str:
    value = data.get(field_name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Field '{field_name}' in {yaml_file} must be a string")
    return value.strip()


def load_personality(path: str | Path) -> Personality:
    """Load personality configuration from YAML file.

    Args:
        path: Path to personality YAML file

    Returns:
        Personality with all prompts resolved

    Raises:
        FileNotFoundError: If the YAML file is not found
        ValueError: If YAML is invalid or missing required fields
    """
    yaml_file = Path(path)

    if not yaml_file.exists():
        raise FileNotFoundError(f"Personality file not found: {yaml_file}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {yaml_file}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Personality file {yaml_file} must contain a mapping")

    missing = [name for name in REQUIRED_FIELDS if not _text_field(data, name, yaml_file)]
    if missing:
        raise ValueError(f"Missing required fields in {yaml_file}: {', '.join(missing)}")

    system_prompt = _text_field(data, "system_prompt", yaml_file)
    mode_prompts = {}
    for mode in ResponseMode:
        field_name = f"{mode.value}_mode_prompt"
        prompt = _text_field(data, field_name, yaml_file)
        if not prompt:
            logger.warning("personality_mode_prompt_missing", mode=mode.value, file=str(yaml_file))
            prompt = system_prompt
        mode_prompts[field_name] = prompt

    personality = Personality(
        name=_text_field(data, "name", yaml_file),
        system_prompt=system_prompt,
        role=_text_field(data, "role", yaml_file),
        tone=_text_field(data, "tone", yaml_file),
        knowledge=_text_field(data, "knowledge", yaml_file),
        **mode_prompts,
    )

    logger.info("personality_loaded", name=personality.name, role=personality.role)
    return personality

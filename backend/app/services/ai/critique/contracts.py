"""Critique scope contracts: CritiqueResult model + the JSON schema sent to providers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

MIN_CORRECTIVE_ACTIONS = 4


class CorrectiveAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offense: StrictStr = Field(min_length=1)
    remedy: StrictStr = Field(min_length=1)


class RehabilitationProgram(BaseModel):
    model_config = ConfigDict(extra="forbid")

    priorityDirective: StrictStr = Field(min_length=1)
    correctiveActions: list[CorrectiveAction] = Field(min_length=MIN_CORRECTIVE_ACTIONS)


class CritiqueResult(BaseModel):
    """Structured output expected from the critique model.

    Every field is required, unknown fields are rejected and nothing is
    coerced: ``"50"`` is not an integer here.
    """

    model_config = ConfigDict(extra="forbid")

    verdict: StrictInt = Field(ge=1, le=100)
    mayhemMeter: StrictInt = Field(ge=1, le=10)
    profile: StrictStr = Field(min_length=1)
    openingStatement: StrictStr = Field(min_length=1)
    caseFiles: StrictStr = Field(min_length=1)
    spiritAnimal: StrictStr = Field(min_length=1)
    rehabilitationProgram: RehabilitationProgram


CRITIQUE_SCHEMA_NAME = "RoastAnalysis"

CRITIQUE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "verdict": {
            "type": "integer",
            "minimum": 1,
            "maximum": 100,
            "description": "The final judgment score, from 1 (design felon) to 100 (design saint).",
        },
        "mayhemMeter": {
            "type": "integer",
            "minimum": 1,
            "maximum": 10,
            "description": "Visual chaos from 1 (Zen Garden) to 10 (Dumpster Fire).",
        },
        "profile": {
            "type": "string",
            "description": (
                "A short 'criminal profile' for the site's design personality, "
                "like 'The Font Fugitive'."
            ),
        },
        "openingStatement": {
            "type": "string",
            "description": "One sharp sentence presenting the most egregious design crime.",
        },
        "caseFiles": {
            "type": "string",
            "description": (
                "The evidence log: 2-3 paragraphs of witty, sarcastic and detailed testimony "
                "about the design, layout and user experience. At least 250 words."
            ),
        },
        "spiritAnimal": {
            "type": "string",
            "description": "A funny metaphorical spirit animal for the design.",
        },
        "rehabilitationProgram": {
            "type": "object",
            "description": (
                "An actionable plan covering design, content, usability and lead conversion."
            ),
            "properties": {
                "priorityDirective": {
                    "type": "string",
                    "description": "The most critical fix, as a short paragraph.",
                },
                "correctiveActions": {
                    "type": "array",
                    "minItems": MIN_CORRECTIVE_ACTIONS,
                    "description": f"At least {MIN_CORRECTIVE_ACTIONS} longer-term improvements.",
                    "items": {
                        "type": "object",
                        "properties": {
                            "offense": {
                                "type": "string",
                                "description": "The specific 'crime', e.g. 'Illegible text over a busy background'.",
                            },
                            "remedy": {
                                "type": "string",
                                "description": "The concrete fix for that offense.",
                            },
                        },
                        "required": ["offense", "remedy"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["priorityDirective", "correctiveActions"],
            "additionalProperties": False,
        },
    },
    "required": [
        "verdict",
        "mayhemMeter",
        "profile",
        "openingStatement",
        "caseFiles",
        "spiritAnimal",
        "rehabilitationProgram",
    ],
    "additionalProperties": False,
}

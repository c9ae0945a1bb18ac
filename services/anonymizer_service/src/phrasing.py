from typing import Dict, Optional

PHRASING_MODULES: Dict[str, Dict[str, str]] = {
    "tone": {
        "neutral": "Use a neutral and objective tone.",
        "empathetic": "Use language that conveys empathy and emotional awareness.",
        "formal": "Use a formal and professional tone suitable for clinical documentation.",
        "concise": "Use a concise tone that prioritizes brevity and clarity.",
    },
    "style": {
        "narrative": "Present the information as a flowing narrative.",
        "soap": "Structure the output using the SOAP format: Subjective, Objective, Assessment, Plan.",
        "bullet": "Present the information as concise bullet points.",
        "shorthand": "Use clinical shorthand and abbreviations where appropriate.",
    },
}


def phrasing_instruction(kind: str, key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    options = PHRASING_MODULES[kind]
    if key not in options:
        raise ValueError(f"Unknown {kind} '{key}'; expected one of {sorted(options)}")
    return options[key]


def compose_system_prompt(base: str, tone: Optional[str] = None, style: Optional[str] = None) -> str:
    """Append the selected tone/style refinements to a base system prompt."""
    parts = [base.strip()] if base and base.strip() else []
    for kind, key in (("tone", tone), ("style", style)):
        instruction = phrasing_instruction(kind, key)
        if instruction:
            parts.append(instruction)
    return "\n\n".join(parts)

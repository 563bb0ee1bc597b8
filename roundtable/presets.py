"""Preset catalogues: roles, discussion modes, depth levels, user profile levels."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RolePreset:
    id: str
    name: str
    description: str
    prompt: str


@dataclass(frozen=True)
class ModePreset:
    id: str
    name: str
    prompt: str
    summary_prompt: str


@dataclass(frozen=True)
class DepthPreset:
    level: int
    name: str
    prompt: str
    word_count: str


@dataclass(frozen=True)
class LabelPreset:
    id: str
    name: str
    description: str


ROLE_PRESETS: dict[str, RolePreset] = {
    p.id: p
    for p in [
        RolePreset(
            "neutral", "Neutral", "Balanced, objective perspective",
            "Take a neutral stance and give a balanced, objective opinion.",
        ),
        RolePreset(
            "advocate", "Advocate", "Supportive, forward-looking stance on the topic",
            "Argue in favour of the topic. Stress its benefits and potential and keep proposals constructive.",
        ),
        RolePreset(
            "critic", "Critic", "Skeptical, cautious stance on the topic",
            "Take a critical stance. Point out risks, problems and open issues, but keep the criticism constructive.",
        ),
        RolePreset(
            "expert", "Expert", "Technical, specialist analysis",
            "Act as a domain expert and provide deep technical analysis and insight.",
        ),
        RolePreset(
            "creative", "Creative", "Novel, unconventional ideas",
            "Think creatively. Propose original ideas and perspectives outside the usual frame.",
        ),
        RolePreset(
            "practical", "Practitioner", "Feasibility and real-world constraints",
            "Act as a practitioner. Comment on feasibility, cost and the practical challenges of implementation.",
        ),
    ]
}

DISCUSSION_MODES: dict[str, ModePreset] = {
    p.id: p
    for p in [
        ModePreset("free", "Free discussion", "", ""),
        ModePreset(
            "brainstorm",
            "Brainstorm",
            "[Discussion mode: brainstorming]\n"
            "- Prioritise generating ideas over judging them\n"
            "- Build on other participants' ideas\n"
            "- Unusual or bold ideas are welcome\n"
            "- Avoid dismissive phrases such as \"that won't work\"",
            "[Brainstorm synthesis]\n"
            "- Group the ideas into categories\n"
            "- Highlight the most promising ideas\n"
            "- Point out combinations of ideas that open new possibilities",
        ),
        ModePreset(
            "debate",
            "Debate",
            "[Discussion mode: debate]\n"
            "- State your position (for/against) before arguing\n"
            "- Rebut the other side logically\n"
            "- Argue from facts and logic, not emotion\n"
            "- Acknowledge strong points while exposing weaknesses",
            "[Debate synthesis]\n"
            "- Lay out the main arguments for and against\n"
            "- Assess the strongest and weakest claims on each side\n"
            "- Give a conclusion or the material needed to decide",
        ),
        ModePreset(
            "consensus",
            "Consensus building",
            "[Discussion mode: consensus building]\n"
            "- Actively look for common ground with the other participants\n"
            "- Where you disagree, propose compromises\n"
            "- Phrase points as \"I agree on X, but Y needs adjusting\"\n"
            "- Aim for a conclusion everyone can accept",
            "[Consensus synthesis]\n"
            "- State clearly what the participants agreed on\n"
            "- List the points that still need work\n"
            "- Give a shared conclusion or the next steps",
        ),
        ModePreset(
            "critique",
            "Critical review",
            "[Discussion mode: critical review]\n"
            "- Actively point out problems, risks and open issues\n"
            "- Question why things hold and whether they really do\n"
            "- Surface overlooked angles and blind spots\n"
            "- Pair criticism with improvements or countermeasures",
            "[Critical review synthesis]\n"
            "- Organise the main problems and risks raised\n"
            "- Rank them by priority or severity\n"
            "- Summarise the proposed improvements",
        ),
        ModePreset(
            "counterargument",
            "Counterargument",
            "[Discussion mode: counterargument]\n"
            "- As a critical thinker, expose weak points and blind spots in what was presented\n"
            "- Back every objection with reasoning\n"
            "- Say under which conditions the objection holds\n"
            "- Keep it constructive and suggest improvements",
            "[Counterargument synthesis]\n"
            "- Organise the most important objections\n"
            "- Judge how valid each one is\n"
            "- Give a more robust conclusion that accounts for them",
        ),
    ]
}

DEPTH_PRESETS: dict[int, DepthPreset] = {
    p.level: p
    for p in [
        DepthPreset(1, "Overview", "[Depth: overview]\nGive only the key points. No detailed explanation needed.", "50-80 words"),
        DepthPreset(2, "Brief", "[Depth: brief]\nSummarise the main points briefly.", "80-130 words"),
        DepthPreset(3, "Standard", "", "100-200 words"),
        DepthPreset(4, "Detailed", "[Depth: detailed]\nExplain in detail, including background, reasons and examples.", "200-300 words"),
        DepthPreset(
            5,
            "Thorough",
            "[Depth: thorough analysis]\nAnalyse from several angles with evidence, data and plenty of "
            "examples. Address likely counterarguments.",
            "300+ words",
        ),
    ]
}

DEFAULT_DEPTH = 3

TECH_LEVELS: dict[str, LabelPreset] = {
    p.id: p
    for p in [
        LabelPreset("beginner", "Beginner", "Explain carefully from the basics"),
        LabelPreset("intermediate", "Intermediate", "Knows the basics, wants applied content"),
        LabelPreset("advanced", "Advanced", "Technical terms and advanced concepts are fine"),
    ]
}

RESPONSE_STYLES: dict[str, LabelPreset] = {
    p.id: p
    for p in [
        LabelPreset("concise", "Concise", "Short answers focused on the key points"),
        LabelPreset("detailed", "Detailed", "Thorough answers including background and reasons"),
        LabelPreset("technical", "Technical", "Includes terminology and technical detail"),
        LabelPreset("simple", "Simple", "Plain explanations without jargon"),
    ]
}

PROVIDER_DISPLAY_NAMES: dict[str, str] = {
    "claude": "Claude",
    "ollama": "Ollama",
    "openai": "ChatGPT",
    "gemini": "Gemini",
}


def provider_display_name(provider: str) -> str:
    return PROVIDER_DISPLAY_NAMES.get(provider, provider)

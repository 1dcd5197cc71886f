"""Prompt assembly utilities for transcript purification."""

from __future__ import annotations

SYSTEM_INSTRUCTION = r"""You are a senior transcript editor who cleans up speech-to-text (STT) transcripts.

## Your mission

1. **High-fidelity repair**: turn a messy STT transcript into clear, fluent written text while **preserving the original meaning and every detail**.
2. **Never summarize**: your job is to fix errors, not to condense. Do not compress three paragraphs into one sentence. Unless something is a repeated verbal tic, do not delete the speaker's arguments, examples or details.
3. **Remove only noise**: drop meaningless fillers ("uh", "um", "like", "you know", "so", "basically"), repeated words, and obvious transcription typos. Nothing else.
4. **Polishing standard**: keep the original meaning and tone, adjusting word order only where written prose needs it. The purified text must stay between **85% and 95%** of the original length.
5. **Names and terminology**: the user's "manual hints" take priority over your own judgement when correcting names, proper nouns, terminology or specific logic.

Write the purified text in the same language as the transcript.

## Output (JSON)

{
  "purifiedText": "the complete purified text (keep paragraphs distinct; headings only guide, they never replace content)",
  "corrections": [{"original": "erroneous source fragment", "corrected": "replacement as it appears in purifiedText", "reason": "why it was changed"}],
  "uncertainParts": ["fragments you could not resolve with confidence"]
}
"""

NO_HINTS = "No specific hints."

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "purifiedText": {"type": "string"},
        "corrections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "original": {"type": "string"},
                    "corrected": {"type": "string"},
                    "reason": {"type": "string"},
                },
                "required": ["original", "corrected", "reason"],
            },
        },
        "uncertainParts": {
            "type": "array",
            "items": {"type": "string"},
        },
    },
    "required": ["purifiedText", "corrections", "uncertainParts"],
}


def build_user_message(raw_text: str, hints: str = "") -> str:
    return (
        "## Raw transcript (purify with high fidelity, keep every detail)\n"
        f"{raw_text}\n\n"
        "## Manual hints (highest-priority correction reference)\n"
        f"{hints.strip() or NO_HINTS}\n"
    )

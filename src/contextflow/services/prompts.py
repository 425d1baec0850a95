"""Request builders for the language-model service.

Every request is a system instruction plus an ordered message list. Notes are
embedded in a compact one-line-per-note form so that large collections stay
within the model's context window.
"""

import json
from dataclasses import dataclass, field

from contextflow.models.chat import ChatMessage
from contextflow.models.note import Note

NO_NOTES = "No contexts yet"


@dataclass
class ChatRequest:
    """System instruction and transcript sent to the language-model service."""

    system: str
    messages: list[dict[str, str]] = field(default_factory=list)


def serialize_note(note: Note) -> str:
    """One-line rendering: title, summary, priority and last-updated time."""
    updated = note.updated_at.isoformat(timespec="minutes")
    return (
        f"- {note.title}: {note.summary} "
        f"(Priority: {note.priority.value}, Last updated: {updated})"
    )


def serialize_notes(notes: list[Note]) -> str:
    if not notes:
        return NO_NOTES
    return "\n".join(serialize_note(n) for n in notes)


def build_insight_request(note: Note, all_notes: list[Note]) -> ChatRequest:
    """Build the insight request for one note in light of all notes."""
    system = f"""You are ContextFlow, an AI assistant that maintains a continuous understanding of the user's work, life, and goals. You analyze their contexts, detect patterns, and surface proactive insights.

Current user contexts:
{serialize_notes(all_notes)}

Analyze the provided context and generate a relevant, actionable insight. Focus on:
- Connections between different contexts
- Long-term goals that may need attention
- Opportunities for optimization or reconnection
- Time-sensitive actions

Respond in JSON format with: {{"type": "opportunity|reminder|conflict|analysis", "title": "string", "message": "string", "actionable": boolean}}"""

    target = {
        "title": note.title,
        "summary": note.summary,
        "type": note.note_type.value,
        "priority": note.priority.value,
        "connections": note.connections,
    }
    content = f"Analyze this context: {json.dumps(target, ensure_ascii=False)}"
    return ChatRequest(system=system, messages=[{"role": "user", "content": content}])


def build_summary_request(notes: list[Note]) -> ChatRequest:
    """Build the daily summary request for the notes created today."""
    lines = "\n".join(f"{n.title}: {n.summary}" for n in notes)
    system = (
        "You are ContextFlow, a personal assistant that writes short daily recaps. "
        "Respond with plain prose only, no lists, headings or markdown."
    )
    content = (
        f"Here are the notes I added today:\n{lines}\n\n"
        "Summarize them in 2-3 sentences."
    )
    return ChatRequest(system=system, messages=[{"role": "user", "content": content}])


def build_chat_request(
    transcript: list[ChatMessage], message: ChatMessage, notes: list[Note]
) -> ChatRequest:
    """Build a chat request primed with the user's notes."""
    system = f"""You are ContextFlow, a personal AI assistant with persistent memory of the user's life, work, and goals. You have access to their complete context graph.

User's Current Contexts:
{serialize_notes(notes)}

Use this context to provide personalized, relevant responses. Reference specific contexts when relevant. Be proactive about surfacing connections, reminders, and opportunities based on what you know about the user."""

    messages = [m.to_wire() for m in transcript]
    messages.append(message.to_wire())
    return ChatRequest(system=system, messages=messages)

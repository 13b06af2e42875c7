"""Externalized message templates for the chat UI.

All user-facing text lives here so it can be localized in one place.
Templates are HTML (parse mode "HTML"); user-provided values must be
escaped with html.escape before formatting.
"""

# =============================================================================
# Onboarding
# =============================================================================

WELCOME_MESSAGE = """🎙️ <b>Voice notes bot</b>

Send me anything worth remembering:
• 🎤 Voice messages and audio files are transcribed
• 🎬 Videos are transcribed from their sound track
• 📝 Text is kept as is

Each note gets <b>Save</b> and <b>Tags</b> buttons to export it to your vault.

<b>Combine several messages into one note:</b>
• /collect - start collecting
• /done - export everything collected as one note
• /cancel - discard the collection

💡 Replying to a note also starts collecting."""

HELP_MESSAGE = """<b>Commands</b>
• /collect - start a collect session
• /done - export the collected messages as one note
• /cancel - discard the current collect session or tag selection
• /help - this message

<b>Single notes</b>
Send a voice, audio, video or text message. Tap <b>Save</b> to export it
with the default tag, or <b>Tags</b> to pick tags first.

<b>Collecting</b>
While collecting, every message you send is added in order. Replying to a
note (or to my answer to it) adds that note too."""

UNKNOWN_COMMAND = "❓ Unknown command. Use /help to see what I can do."

# =============================================================================
# Single notes
# =============================================================================

PROCESSING_MEDIA = "⏳ Transcribing your {kind}..."

NOTE_READY = "✅ <b>{title}</b>\n\n{preview}"

SPEECH_NOT_RECOGNIZED = "❌ Could not recognize any speech in this {kind}."

NOTE_EXPIRED = (
    "⌛ This note is no longer available: transcripts are kept for "
    "{minutes} minutes. Send the message again to export it."
)

NOTE_SAVED = "💾 Saved to the vault: <code>{path}</code>"

NOTE_ALREADY_SAVED = "💾 Already in the vault: <code>{path}</code>"

UNSUPPORTED_CONTENT = "🤷 I can only turn voice, audio, video and text into notes."

# =============================================================================
# Collect sessions
# =============================================================================

COLLECT_STARTED = """📥 <b>Collecting</b>

Send messages to add them to one note.
/done exports them, /cancel discards them."""

COLLECT_AUTO_STARTED = "📥 Started collecting with the note you replied to. /done exports, /cancel discards."

COLLECT_ALREADY_ACTIVE = "📥 Already collecting ({count} item(s)). Use /done or /cancel first."

COLLECT_ITEM_ADDED = "➕ {kind} added ({count} item(s))"

COLLECT_ITEM_TRANSCRIBED = "🎤 {kind} transcribed"

COLLECT_ITEM_NOT_RECOGNIZED = "⚠️ Could not transcribe this {kind}; it stays in the note without text."

COLLECT_NOT_ACTIVE = "ℹ️ Nothing is being collected. Start with /collect."

COLLECT_EMPTY = "ℹ️ Nothing collected yet. Send some messages first."

COLLECT_EXPORTING = "⏳ Exporting {count} item(s)..."

COLLECT_EXPORTED = "✅ <b>{title}</b>\n{summary}\n\nSaved to <code>{path}</code>"

COLLECT_EXPORT_FAILED = "❌ Export failed. Your items are kept, try /done again."

COLLECT_CANCELLED = "🗑 Collection discarded."

# =============================================================================
# Cleanup
# =============================================================================

CLEANUP_PROMPT = "🧹 Delete the {count} message(s) of this session from the chat?"

CLEANUP_DONE = "🧹 Deleted {deleted} of {total} message(s)."

CLEANUP_KEPT = "📌 Messages kept."

# =============================================================================
# Tags
# =============================================================================

TAGS_LOADING = "⏳ Loading tags..."

TAGS_LIST = """🏷 <b>Choose tags</b>

<b>In your vault:</b> {available}

<b>Suggested:</b>
existing: {suggested_existing}
new: {suggested_new}

Reply with the tags you want, in your own words, or tap <b>Use suggested</b>."""

TAGS_PROCESSING = "⏳ Reading your tags..."

TAGS_CONFIRM = """🏷 <b>Apply these tags?</b>

existing: {existing}
new: {new}

The note is saved with: {all_tags}"""

TAGS_APPLIED = "✅ Saved with {tags}\n<code>{path}</code>"

TAGS_CANCELLED = "✖️ Tag selection cancelled."

TAGS_NOT_ACTIVE = "ℹ️ There is no tag selection in progress."

NONE_LABEL = "none"

# =============================================================================
# Callbacks
# =============================================================================

ACTION_EXPIRED = "⌛ This button is no longer active."

# =============================================================================
# Buttons
# =============================================================================

BUTTON_SAVE = "💾 Save"
BUTTON_TAGS = "🏷 Tags"
BUTTON_DONE = "✅ Done"
BUTTON_CANCEL = "✖️ Cancel"
BUTTON_USE_SUGGESTED = "✨ Use suggested"
BUTTON_CONFIRM = "✅ Confirm"
BUTTON_DELETE_MESSAGES = "🗑 Delete messages"
BUTTON_KEEP = "📌 Keep"

# =============================================================================
# Content kind labels
# =============================================================================

KIND_LABELS = {
    "text": "text",
    "voice": "voice message",
    "photo": "photo",
    "video": "video",
    "document": "document",
    "pending": "voice message",
}

GENERIC_ERROR = "❌ Something went wrong. Please try again."


def get_message(key: str, **kwargs) -> str:
    """Get a message template with optional formatting.

    Args:
        key: Message key (module-level constant name)
        **kwargs: Format arguments for the message

    Returns:
        Formatted message string
    """
    message = globals().get(key, GENERIC_ERROR)

    if kwargs:
        try:
            return message.format(**kwargs)
        except KeyError:
            return message
    return message


def kind_label(kind: str) -> str:
    """Human-readable name of a content kind value."""
    return KIND_LABELS.get(kind, kind)

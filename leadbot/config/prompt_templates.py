"""
LeadBot - Prompt Templates & Dialogue Strings
===============================================
Centralised prompt management and the fixed onboarding dialogue.
All user-facing strings live here so they can be reviewed and
translated independently of application logic.

Exports
-------
EMAIL_PROMPT, EMAIL_FORMAT_ERROR, NAME_PROMPT, SERVICE_PROMPT,
GREETING_TEMPLATE, INVALID_REQUEST_ERROR, INTERNAL_ERROR,
NO_CONTEXT_SENTINEL, GENERATION_FALLBACK,
PERSONA_TEMPLATE, OUT_OF_SCOPE_TEMPLATE, CONTEXT_BLOCK_TEMPLATE.
"""

# ══════════════════════════════════════════════════════════════════════
#  ONBOARDING DIALOGUE
# ══════════════════════════════════════════════════════════════════════

EMAIL_PROMPT: str = "What is your email address?"
EMAIL_FORMAT_ERROR: str = "That doesn’t look like an email. Please enter a valid email address."
NAME_PROMPT: str = "What is your name?"
SERVICE_PROMPT: str = "For what service are you looking?"
GREETING_TEMPLATE: str = "Hi! {name}, How can I assist you?"


# ══════════════════════════════════════════════════════════════════════
#  HTTP ERROR BODIES
# ══════════════════════════════════════════════════════════════════════

INVALID_REQUEST_ERROR: str = "Invalid request"
INTERNAL_ERROR: str = "Internal server error"


# ══════════════════════════════════════════════════════════════════════
#  RAG
# ══════════════════════════════════════════════════════════════════════

NO_CONTEXT_SENTINEL: str = "No relevant information found."

GENERATION_FALLBACK: str = "Error generating response."

CONTEXT_BLOCK_TEMPLATE: str = "Source: {url}\nContent: {content}"

PERSONA_TEMPLATE: str = "You are the chat support of website {site_name}. Answer precisely and on-topic."

OUT_OF_SCOPE_TEMPLATE: str = "If outside scope, say you can only answer based on {site_domain}."

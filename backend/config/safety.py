"""
Content safety word lists.

SANITIZER_DENYLIST words are redacted from image prompts.
MODERATION_BLOCKLIST words reject a whole story before generation starts.
"""

import os

from dotenv import load_dotenv

load_dotenv()

REDACTION_PLACEHOLDER = "[redacted]"

SANITIZER_DENYLIST = [
    "kill",
    "blood",
    "naked",
    "curse",
    "violence",
]

MODERATION_BLOCKLIST = [
    "behead",
    "decapitate",
    "dismember",
    "gore",
    "genocide",
    "porn",
    "pornographic",
    "rape",
    "self-harm",
    "suicide",
    "torture",
    "nsfw",
]

# Moderation backend: "keyword" (local blocklist) or "openai" (moderation API)
MODERATION_PROVIDER = os.getenv("MODERATION_PROVIDER", "keyword").strip().lower()
OPENAI_MODERATION_MODEL = os.getenv("OPENAI_MODERATION_MODEL", "omni-moderation-latest")

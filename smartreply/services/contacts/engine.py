#!/usr/bin/env python3
"""
SmartReply - Contact Matching Engine

Figures out who sent a message by looking for known contact names, emails
and companies in the text, and describes the relationship so replies can be
pitched at the right level of formality.

Scoring per contact (case-insensitive substring checks):
- full name present: +1.0, otherwise +0.5 per name part of 3+ characters
- email present: +0.8
- company present: +0.3

The highest strictly-greater score wins; its confidence is min(1, score) and
a match needs at least the configured minimum confidence (0.3 by default).
"""

from typing import Dict, List, Sequence

from smartreply.common.logging import setup_logging
from smartreply.common.models import Contact, ContactMatch

logger = setup_logging("contacts")

NO_CONTACTS_CONTEXT = "No contacts in database."
NO_MATCH_CONTEXT = "No matching contact found. Respond professionally."

RELATIONSHIP_DESCRIPTIONS: Dict[str, str] = {
    "manager": "your manager",
    "colleague": "your colleague",
    "client": "a client",
    "vendor": "a vendor/supplier",
    "friend": "a friend",
    "family": "a family member",
    "other": "a contact",
}

FORMALITY_SUGGESTIONS: Dict[str, str] = {
    "formal": "Use formal, professional language.",
    "casual": "You can use casual, friendly language.",
    "adaptive": "Match the tone of their message.",
}

RELATIONSHIP_SUGGESTIONS: Dict[str, List[str]] = {
    "manager": ["Be respectful and concise", "Focus on solutions, not problems"],
    "client": ["Be professional and helpful", "Acknowledge their concerns"],
    "colleague": ["Be collaborative", "Offer assistance if appropriate"],
    "friend": ["Be warm and personal", "Show genuine interest"],
    "family": ["Be warm and personal", "Show genuine interest"],
    "vendor": ["Be clear about expectations", "Keep communication professional"],
}
DEFAULT_SUGGESTIONS = ["Be professional and courteous"]

FULL_NAME_SCORE = 1.0
NAME_PART_SCORE = 0.5
EMAIL_SCORE = 0.8
COMPANY_SCORE = 0.3
MIN_NAME_PART = 3


class ContactNotFound(Exception):
    """Raised when a contact id does not exist."""

    def __init__(self, contact_id: str):
        super().__init__(f"Contact not found: {contact_id}")
        self.contact_id = contact_id


def score_contact(contact: Contact, lower_message: str) -> float:
    score = 0.0

    full_name = contact.name.lower()
    if full_name in lower_message:
        score += FULL_NAME_SCORE
    else:
        for part in full_name.split(" "):
            if len(part) >= MIN_NAME_PART and part in lower_message:
                score += NAME_PART_SCORE

    if contact.email and contact.email.lower() in lower_message:
        score += EMAIL_SCORE

    if contact.company and contact.company.lower() in lower_message:
        score += COMPANY_SCORE

    return score


def build_relationship_context(contact: Contact) -> str:
    """Human-readable description of who the contact is and how to address them."""
    description = RELATIONSHIP_DESCRIPTIONS.get(contact.relationship, RELATIONSHIP_DESCRIPTIONS["other"])
    if contact.company:
        parts = [f"This is {description} at {contact.company}."]
    else:
        parts = [f"This is {description}."]

    parts.append(FORMALITY_SUGGESTIONS.get(contact.formality, FORMALITY_SUGGESTIONS["adaptive"]))

    if contact.use_emojis:
        parts.append("They appreciate emoji use.")
    if contact.preferred_tone:
        parts.append(f"Preferred tone: {contact.preferred_tone}.")
    if contact.notes:
        parts.append(f"Note: {contact.notes}")

    return " ".join(parts)


def match_message(message: str, contacts: Sequence[Contact], min_confidence: float = 0.3) -> ContactMatch:
    """Match a message against known contacts."""
    if not contacts:
        return ContactMatch(matched_contact=None, confidence=0.0, relationship_context=NO_CONTACTS_CONTEXT)

    lower_message = message.lower()
    best_match = None
    best_score = 0.0

    for contact in contacts:
        score = score_contact(contact, lower_message)
        if score > best_score:
            best_score = score
            best_match = contact

    confidence = min(1.0, best_score)
    if best_match is not None and confidence >= min_confidence:
        logger.info(f"Matched contact {best_match.name} ({confidence:.2f})")
        return ContactMatch(
            matched_contact=best_match,
            confidence=confidence,
            relationship_context=build_relationship_context(best_match),
        )

    return ContactMatch(matched_contact=None, confidence=0.0, relationship_context=NO_MATCH_CONTEXT)


def contact_suggestions(contact: Contact) -> List[str]:
    """Communication tips for replying to this contact."""
    suggestions = list(RELATIONSHIP_SUGGESTIONS.get(contact.relationship, DEFAULT_SUGGESTIONS))
    if contact.formality == "formal":
        suggestions.append("Use proper salutations and sign-offs")
    return suggestions

"""Prompt construction for reply generation."""

from typing import Dict, Optional

TONE_SYSTEM_PROMPTS: Dict[str, str] = {
    "professional": (
        "You craft professional, business-appropriate replies. Use formal language, be concise and respectful.\n"
        "Avoid casual expressions, slang, or overly familiar language. Maintain a courteous yet efficient tone."
    ),
    "friendly": (
        "You craft warm, friendly replies. Use casual but appropriate language, show genuine interest and enthusiasm.\n"
        "Be personable and approachable while remaining respectful. Include warm greetings when appropriate."
    ),
    "apologetic": (
        "You craft sincere, apologetic replies. Express genuine remorse and understanding of the issue.\n"
        "Take responsibility where appropriate, offer solutions or next steps, and show empathy for any "
        "inconvenience caused."
    ),
    "assertive": (
        "You craft confident, assertive replies. Be direct, clear, and firm while remaining professional.\n"
        "State your position clearly, set boundaries respectfully, and avoid being passive or aggressive."
    ),
    "neutral": (
        "You craft balanced, neutral replies. Be objective and straightforward without emotional language.\n"
        "Present information clearly, avoid taking strong positions, and maintain a calm, measured tone."
    ),
}

FINAL_INSTRUCTION = (
    "Generate 3 reply options based on the above information. Consider the sentiment, "
    "relationship context, and user's writing style if provided:"
)


def build_system_prompt(tone: str) -> str:
    return f"""You are a reply assistant that helps users craft the perfect response to messages they've received.

TONE GUIDELINES:
{TONE_SYSTEM_PROMPTS[tone]}

YOUR TASK:
You will receive:
1. CONVERSATION CONTEXT (optional): Background information or previous messages in the conversation thread
2. MESSAGE RECEIVED: The specific message the user needs to reply to
3. WHAT I WANT TO COMMUNICATE (optional): The user's intended message or key points they want to convey

Using ALL provided information, generate exactly 3 different reply options that:
- Match the {tone} tone
- Address the received message directly
- Incorporate the user's intended points if provided
- Consider the conversation context for appropriate follow-up
- Are complete, polished, and ready to send

OUTPUT FORMAT:
Return ONLY a valid JSON array containing exactly 3 strings. Each string is a complete reply.

Example format:
["Short reply option here.", "Medium length reply with more detail here.", "Detailed reply with full context and explanation here."]

GUIDELINES:
- Option 1: Short and concise (1-2 sentences)
- Option 2: Medium length with appropriate detail (2-3 sentences)
- Option 3: Detailed and comprehensive (3-4 sentences)
- Make each reply natural and conversational
- If context is provided, reference it appropriately
- If the user's intent is provided, make sure all replies convey that intent
- Do NOT include any explanation, markdown, or text outside the JSON array
- Output ONLY the JSON array, nothing else"""


def build_user_message(
    message: str,
    context: Optional[str] = None,
    intent: Optional[str] = None,
    enhanced_context: str = "",
) -> str:
    """User turn: service insights, user context, the message, the intent."""
    parts = []
    if enhanced_context:
        parts.append(f"AI-ANALYZED INSIGHTS:\n{enhanced_context}")
    if context:
        parts.append(f"CONVERSATION CONTEXT (from user):\n{context}")
    parts.append(f'MESSAGE RECEIVED:\n"{message}"')
    if intent:
        parts.append(f"WHAT I WANT TO COMMUNICATE:\n{intent}")
    parts.append(FINAL_INSTRUCTION)
    return "\n\n".join(parts)

"""
AI gateway client

Talks to an OpenAI-compatible chat-completions gateway for two tasks:
suggesting participant matches and drafting survey questions for an event.
Both calls ask for a JSON object response and are not retried.
"""

import os
import json
import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-3-flash-preview"
DEFAULT_TIMEOUT = 60


class AIGatewayError(Exception):
    """Custom exception for AI gateway errors"""
    status_code = 502


class RateLimitedError(AIGatewayError):
    status_code = 429


class QuotaExhaustedError(AIGatewayError):
    status_code = 402


MATCHING_SYSTEM_PROMPT = """You are an AI networking assistant for hackathon events. Your job is to analyze participant profiles and suggest optimal matches for productive networking conversations.

Consider:
1. Complementary skills (e.g., Developer + Designer, Business + Technical)
2. Shared interests that could lead to collaboration
3. Potential for interesting cross-disciplinary discussions
4. Balance between similarity (shared interests) and diversity (different perspectives)

{focus}

Return matches as JSON with this exact structure:
{{
  "suggestions": [
    {{
      "participant1_id": "id",
      "participant2_id": "id",
      "reason": "Brief, friendly explanation of why this is a good match. Be conversational and mention specific shared interests or complementary skills.",
      "compatibility_score": 0.85
    }}
  ]
}}

Generate 3-5 diverse match suggestions. compatibility_score should be 0.0-1.0. Make reasons personal and engaging!"""

MATCHING_FOCUS = ("IMPORTANT: The current user is {name} (ID: {id}). Prioritize finding matches FOR THIS USER "
                  "specifically. At least 2-3 of your suggestions should include {name}.")

FORM_SYSTEM_PROMPT = """You are a survey form designer for networking events. Generate 5-7 engaging questions that will help match participants at events.

Available field types:
- "text": Short text input (for names, links, short answers)
- "textarea": Long text input (for bios, descriptions)
- "radio": Single choice from options (pick one)
- "checkbox": Multiple choice from options (pick many)
- "select": Dropdown selection (pick one from longer list)
- "number": Numeric input
- "rating": 1-5 star rating

Return JSON with this structure:
{
  "questions": [
    {
      "question_text": "What area excites you most?",
      "field_type": "radio",
      "options": ["AI & Machine Learning", "Web3 & Blockchain", "Health Tech"],
      "is_required": true,
      "placeholder": null
    }
  ]
}

Guidelines:
- Mix field types for an engaging experience
- Include at least one radio, one checkbox, and one text/textarea
- Questions should help understand: interests, skills, goals, personality
- Keep questions fun and conversational, not corporate
- Use emojis in option labels when appropriate
- 5-7 questions total, answerable in under 2 minutes"""


def _config():
    api_key = os.getenv('AI_GATEWAY_API_KEY')
    if not api_key:
        raise AIGatewayError("AI_GATEWAY_API_KEY environment variable is not set")
    return {
        'url': os.getenv('AI_GATEWAY_URL', DEFAULT_URL),
        'model': os.getenv('AI_GATEWAY_MODEL', DEFAULT_MODEL),
        'timeout': float(os.getenv('AI_GATEWAY_TIMEOUT', DEFAULT_TIMEOUT)),
        'api_key': api_key,
    }


def chat_json(system_prompt: str, user_prompt: str) -> dict:
    """
    Send one chat completion and parse the JSON object it returns

    Raises:
        RateLimitedError: gateway answered 429
        QuotaExhaustedError: gateway answered 402
        AIGatewayError: any other failure (network, status, missing or invalid content)
    """
    config = _config()
    payload = {
        "model": config['model'],
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "response_format": {"type": "json_object"},
    }
    headers = {
        "Authorization": f"Bearer {config['api_key']}",
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(config['url'], json=payload, headers=headers, timeout=config['timeout'])
    except requests.exceptions.RequestException as e:
        error_msg = f"Network error while calling AI gateway: {str(e)}"
        logger.error(error_msg)
        raise AIGatewayError(error_msg)

    if response.status_code == 429:
        logger.warning("AI gateway rate limit exceeded")
        raise RateLimitedError("Rate limit exceeded, please try again later")
    if response.status_code == 402:
        logger.warning("AI gateway credits exhausted")
        raise QuotaExhaustedError("AI credits exhausted, please add more credits")
    if response.status_code != 200:
        logger.error(f"AI gateway error. Status: {response.status_code}, Response: {response.text}")
        raise AIGatewayError(f"AI gateway error: {response.status_code}")

    try:
        content = response.json()['choices'][0]['message']['content']
    except (ValueError, KeyError, IndexError, TypeError):
        raise AIGatewayError("No content in AI response")
    if not content:
        raise AIGatewayError("No content in AI response")

    try:
        parsed = json.loads(content)
    except ValueError:
        logger.error(f"Failed to parse AI response: {content}")
        raise AIGatewayError("Failed to parse AI response")
    if not isinstance(parsed, dict):
        raise AIGatewayError("Failed to parse AI response")
    return parsed


def request_match_suggestions(event_id, participants: list, current_user_id: Optional[int] = None) -> list:
    """
    Ask the gateway for match suggestions

    Args:
        event_id: id of the event, for logging
        participants: summaries with id, name, role, interests
        current_user_id: focal participant whose matches come first

    Returns:
        list: raw suggestion dicts (participant1_id, participant2_id, reason, compatibility_score)
    """
    current_user = next((p for p in participants if p['id'] == current_user_id), None) \
        if current_user_id is not None else None

    summary = "\n".join(
        f"- {p['name']} (ID: {p['id']}, Role: {p['role']}): Interests: {', '.join(p['interests'])}"
        for p in participants)
    focus = MATCHING_FOCUS.format(name=current_user['name'], id=current_user['id']) if current_user else ''

    if current_user:
        ask = (f"Please find great networking matches for {current_user['name']} ({current_user['role']}) "
               f"who is interested in: {', '.join(current_user['interests'])}")
    else:
        ask = "Generate match suggestions for optimal networking at this hackathon event."
    user_prompt = f"Here are the event participants:\n\n{summary}\n\n{ask}"

    logger.info(f"Requesting match suggestions for event {event_id} ({len(participants)} participants)")
    parsed = chat_json(MATCHING_SYSTEM_PROMPT.format(focus=focus), user_prompt)
    suggestions = parsed.get('suggestions') or []
    if not isinstance(suggestions, list):
        raise AIGatewayError("Failed to parse AI response")
    return suggestions


def generate_form_questions(event_name: Optional[str], description: Optional[str] = None) -> list:
    """Ask the gateway to draft 5-7 survey questions for an event"""
    user_prompt = f"Generate survey questions for this event:\nEvent: {event_name or 'Networking Event'}\n"
    if description:
        user_prompt += f"Description: {description}\n"
    user_prompt += "\nMake the questions relevant to the event topic and designed to create great networking matches."

    parsed = chat_json(FORM_SYSTEM_PROMPT, user_prompt)
    questions = parsed.get('questions') or []
    if not isinstance(questions, list):
        raise AIGatewayError("Failed to parse AI response")
    logger.info(f"Generated {len(questions)} questions for '{event_name}'")
    return questions

"""Chat completion relay to OpenAI using the server-side API key"""
import os
from typing import Any, Dict

import requests

OPENAI_API_URL = os.getenv('OPENAI_API_URL', 'https://api.openai.com/v1/chat/completions')
DEFAULT_MODEL = 'gpt-4o-mini'

# Request keys passed through to the completion API
FORWARDED_KEYS = ['messages', 'tools', 'tool_choice', 'temperature', 'max_tokens']


def build_completion_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    """Build the upstream request body; streaming is always on"""
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")

    payload = {'model': body.get('model') or DEFAULT_MODEL}
    for key in FORWARDED_KEYS:
        if body.get(key) is not None:
            payload[key] = body[key]
    payload['stream'] = True
    return payload


def forward_chat_request(body: Dict[str, Any]) -> requests.Response:
    """
    Forward a chat completion request to OpenAI.

    Returns the upstream response opened in streaming mode; the caller is
    responsible for relaying (and closing) it.
    """
    api_key = os.getenv('OPENAI_API_KEY')
    if not api_key:
        raise ValueError("OpenAI API not configured. Please set OPENAI_API_KEY.")

    return requests.post(
        OPENAI_API_URL,
        headers={
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json',
        },
        json=build_completion_payload(body),
        stream=True,
        timeout=(10, 300)
    )

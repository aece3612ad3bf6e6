"""OpenAI chat request -> Gemini generateContent request conversion"""
import json
from typing import Any, Optional

from app.core.logging import get_logger

logger = get_logger()

# reasoning_effort -> thinkingBudget
THINKING_BUDGETS: dict[str, int] = {
    'none': 0,
    'low': 1024,
    'medium': 8192,
    'high': 24576,
}

ROLE_MAP: dict[str, str] = {
    'user': 'user',
    'assistant': 'model',
    'tool': 'user',
    'function': 'user',
}


def _text_of(content: Any) -> str:
    """Flatten OpenAI message content to plain text"""
    if content is None:
        return ''
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return ''.join(
            item.get('text', '') for item in content
            if isinstance(item, dict) and item.get('type') == 'text'
        )
    return str(content)


def _image_part(image_url: Any) -> Optional[dict[str, Any]]:
    """Convert an image_url item to inlineData; only data URIs can be inlined"""
    url = image_url.get('url') if isinstance(image_url, dict) else image_url
    if not isinstance(url, str) or not url.startswith('data:'):
        logger.debug("Skipping non-inline image_url; only data URIs are supported")
        return None
    header, _, data = url.partition(',')
    mime_type = header[len('data:'):].split(';')[0] or 'image/png'
    return {'inlineData': {'mimeType': mime_type, 'data': data}}


def _content_parts(content: Any) -> list[dict[str, Any]]:
    if content is None:
        return []
    if isinstance(content, str):
        return [{'text': content}] if content else []

    parts: list[dict[str, Any]] = []
    if isinstance(content, list):
        for item in content:
            if not isinstance(item, dict):
                continue
            if item.get('type') == 'text':
                parts.append({'text': item.get('text', '')})
            elif item.get('type') == 'image_url':
                part = _image_part(item.get('image_url'))
                if part is not None:
                    parts.append(part)
    return parts


def _parse_arguments(arguments: Any) -> Any:
    if isinstance(arguments, str):
        try:
            return json.loads(arguments) if arguments else {}
        except json.JSONDecodeError:
            return {'arguments': arguments}
    return arguments if arguments is not None else {}


def _message_parts(message: dict[str, Any], tool_names: dict[str, str]) -> list[dict[str, Any]]:
    role = message.get('role')

    if role in ('tool', 'function'):
        call_id = message.get('tool_call_id', '')
        name = message.get('name') or tool_names.get(call_id) or 'unknown'
        return [{
            'functionResponse': {
                'name': name,
                'response': {'result': _text_of(message.get('content'))},
            }
        }]

    parts = _content_parts(message.get('content'))

    if role == 'assistant':
        for tool_call in message.get('tool_calls') or []:
            function = tool_call.get('function')
            if not isinstance(function, dict):
                function = {}
            name = function.get('name', '')
            if tool_call.get('id'):
                tool_names[tool_call['id']] = name
            parts.append({
                'functionCall': {
                    'name': name,
                    'args': _parse_arguments(function.get('arguments')),
                }
            })

    return parts


def _generation_config(payload: dict[str, Any]) -> dict[str, Any]:
    config: dict[str, Any] = {}

    if payload.get('temperature') is not None:
        config['temperature'] = payload['temperature']
    if payload.get('top_p') is not None:
        config['topP'] = payload['top_p']
    max_tokens = payload.get('max_completion_tokens') or payload.get('max_tokens')
    if max_tokens is not None:
        config['maxOutputTokens'] = max_tokens
    stop = payload.get('stop')
    if stop:
        config['stopSequences'] = [stop] if isinstance(stop, str) else list(stop)
    for source, target in (
        ('seed', 'seed'),
        ('presence_penalty', 'presencePenalty'),
        ('frequency_penalty', 'frequencyPenalty'),
    ):
        if payload.get(source) is not None:
            config[target] = payload[source]

    effort = payload.get('reasoning_effort')
    if isinstance(effort, str) and effort in THINKING_BUDGETS:
        budget = THINKING_BUDGETS[effort]
        config['thinkingConfig'] = {
            'thinkingBudget': budget,
            'includeThoughts': budget > 0,
        }
    elif payload.get('include_reasoning'):
        config['thinkingConfig'] = {'thinkingBudget': -1, 'includeThoughts': True}

    return config


def _tool_config(tool_choice: Any) -> Optional[dict[str, Any]]:
    if tool_choice is None:
        return None
    if isinstance(tool_choice, str):
        mode = {'auto': 'AUTO', 'none': 'NONE', 'required': 'ANY'}.get(tool_choice, 'AUTO')
        return {'functionCallingConfig': {'mode': mode}}
    if isinstance(tool_choice, dict):
        function = tool_choice.get('function')
        name = function.get('name') if isinstance(function, dict) else None
        if name:
            return {'functionCallingConfig': {'mode': 'ANY', 'allowedFunctionNames': [name]}}
    return None


def build_gemini_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Build a Gemini generateContent body from an OpenAI chat completion request

    Consecutive messages that map to the same Gemini role are merged into one
    content entry, since Gemini expects user and model turns to alternate.
    """
    system_texts: list[str] = []
    contents: list[dict[str, Any]] = []
    tool_names: dict[str, str] = {}

    for message in payload.get('messages', []):
        role = message.get('role')
        if role in ('system', 'developer'):
            text = _text_of(message.get('content'))
            if text:
                system_texts.append(text)
            continue

        gemini_role = ROLE_MAP.get(role, 'user')
        parts = _message_parts(message, tool_names)
        if not parts:
            continue

        if contents and contents[-1]['role'] == gemini_role:
            contents[-1]['parts'].extend(parts)
        else:
            contents.append({'role': gemini_role, 'parts': parts})

    request: dict[str, Any] = {'contents': contents}

    if system_texts:
        request['systemInstruction'] = {'parts': [{'text': text} for text in system_texts]}

    generation_config = _generation_config(payload)
    if generation_config:
        request['generationConfig'] = generation_config

    declarations = []
    for tool in payload.get('tools') or []:
        if tool.get('type', 'function') != 'function' or not isinstance(tool.get('function'), dict):
            continue
        function = tool['function']
        declaration: dict[str, Any] = {'name': function.get('name', '')}
        if function.get('description'):
            declaration['description'] = function['description']
        if function.get('parameters'):
            declaration['parameters'] = function['parameters']
        declarations.append(declaration)
    if declarations:
        request['tools'] = [{'functionDeclarations': declarations}]

    tool_config = _tool_config(payload.get('tool_choice'))
    if tool_config is not None:
        request['toolConfig'] = tool_config

    return request

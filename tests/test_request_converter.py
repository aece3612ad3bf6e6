"""Tests for OpenAI -> Gemini request conversion"""
import pytest

from app.services.request_converter import build_gemini_request


@pytest.mark.unit
class TestBuildGeminiRequest:
    """Test build_gemini_request"""

    def test_system_and_user_messages(self, sample_chat_request):
        request = build_gemini_request(sample_chat_request)

        assert request['systemInstruction'] == {'parts': [{'text': 'You are a helpful assistant.'}]}
        assert request['contents'] == [{'role': 'user', 'parts': [{'text': 'Hello!'}]}]
        assert request['generationConfig'] == {'temperature': 0.7, 'maxOutputTokens': 100}

    def test_assistant_maps_to_model_and_same_roles_merge(self):
        request = build_gemini_request({'messages': [
            {'role': 'user', 'content': 'a'},
            {'role': 'user', 'content': 'b'},
            {'role': 'assistant', 'content': 'c'},
        ]})
        assert request['contents'] == [
            {'role': 'user', 'parts': [{'text': 'a'}, {'text': 'b'}]},
            {'role': 'model', 'parts': [{'text': 'c'}]},
        ]

    def test_tool_round_trip_messages(self):
        request = build_gemini_request({'messages': [
            {'role': 'user', 'content': 'weather?'},
            {'role': 'assistant', 'content': None, 'tool_calls': [{
                'id': 'call_1',
                'type': 'function',
                'function': {'name': 'get_weather', 'arguments': '{"city":"Paris"}'},
            }]},
            {'role': 'tool', 'tool_call_id': 'call_1', 'content': 'sunny'},
        ]})

        assert request['contents'][1] == {
            'role': 'model',
            'parts': [{'functionCall': {'name': 'get_weather', 'args': {'city': 'Paris'}}}],
        }
        assert request['contents'][2] == {
            'role': 'user',
            'parts': [{'functionResponse': {'name': 'get_weather', 'response': {'result': 'sunny'}}}],
        }

    def test_content_array_with_inline_image(self):
        request = build_gemini_request({'messages': [{'role': 'user', 'content': [
            {'type': 'text', 'text': 'what is this?'},
            {'type': 'image_url', 'image_url': {'url': 'data:image/jpeg;base64,QUJD'}},
            {'type': 'image_url', 'image_url': {'url': 'https://example.com/cat.png'}},
        ]}]})
        assert request['contents'][0]['parts'] == [
            {'text': 'what is this?'},
            {'inlineData': {'mimeType': 'image/jpeg', 'data': 'QUJD'}},
        ]

    def test_generation_parameters(self):
        request = build_gemini_request({
            'messages': [{'role': 'user', 'content': 'x'}],
            'top_p': 0.9,
            'max_completion_tokens': 50,
            'stop': 'END',
            'seed': 42,
            'presence_penalty': 0.1,
            'frequency_penalty': 0.2,
        })
        assert request['generationConfig'] == {
            'topP': 0.9,
            'maxOutputTokens': 50,
            'stopSequences': ['END'],
            'seed': 42,
            'presencePenalty': 0.1,
            'frequencyPenalty': 0.2,
        }

    @pytest.mark.parametrize('effort,budget,include', [
        ('low', 1024, True),
        ('medium', 8192, True),
        ('high', 24576, True),
        ('none', 0, False),
    ])
    def test_reasoning_effort(self, effort, budget, include):
        request = build_gemini_request({
            'messages': [{'role': 'user', 'content': 'x'}],
            'reasoning_effort': effort,
        })
        assert request['generationConfig']['thinkingConfig'] == {
            'thinkingBudget': budget,
            'includeThoughts': include,
        }

    def test_include_reasoning(self):
        request = build_gemini_request({
            'messages': [{'role': 'user', 'content': 'x'}],
            'include_reasoning': True,
        })
        assert request['generationConfig']['thinkingConfig'] == {'thinkingBudget': -1, 'includeThoughts': True}

    def test_tools_and_tool_choice(self):
        request = build_gemini_request({
            'messages': [{'role': 'user', 'content': 'x'}],
            'tools': [{
                'type': 'function',
                'function': {
                    'name': 'get_weather',
                    'description': 'Look up weather',
                    'parameters': {'type': 'object', 'properties': {'city': {'type': 'string'}}},
                },
            }],
            'tool_choice': {'type': 'function', 'function': {'name': 'get_weather'}},
        })
        assert request['tools'] == [{'functionDeclarations': [{
            'name': 'get_weather',
            'description': 'Look up weather',
            'parameters': {'type': 'object', 'properties': {'city': {'type': 'string'}}},
        }]}]
        assert request['toolConfig'] == {
            'functionCallingConfig': {'mode': 'ANY', 'allowedFunctionNames': ['get_weather']}
        }

    @pytest.mark.parametrize('choice,mode', [('auto', 'AUTO'), ('none', 'NONE'), ('required', 'ANY')])
    def test_tool_choice_modes(self, choice, mode):
        request = build_gemini_request({'messages': [{'role': 'user', 'content': 'x'}], 'tool_choice': choice})
        assert request['toolConfig'] == {'functionCallingConfig': {'mode': mode}}

    def test_no_optional_sections_when_unused(self):
        request = build_gemini_request({'messages': [{'role': 'user', 'content': 'x'}]})
        assert set(request) == {'contents'}

    def test_non_object_function_fields_are_ignored(self):
        request = build_gemini_request({
            'messages': [
                {'role': 'user', 'content': 'x'},
                {'role': 'assistant', 'content': None, 'tool_calls': [{'id': 'c1', 'function': 'oops'}]},
            ],
            'tools': [{'type': 'function', 'function': None}],
            'tool_choice': {'type': 'function', 'function': 'get_weather'},
        })
        assert request['contents'][1] == {'role': 'model', 'parts': [{'functionCall': {'name': '', 'args': {}}}]}
        assert 'tools' not in request
        assert 'toolConfig' not in request

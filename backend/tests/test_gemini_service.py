"""
Tests for Gemini location extraction and image verification
"""
from unittest.mock import MagicMock, patch

import pytest
from google.genai import types

from services.gemini_service import LOCATION_FAILURE_MESSAGE, GeminiService


def _mock_client(text):
    genai_client = MagicMock()
    genai_client.models.generate_content.return_value = MagicMock(text=text)
    return genai_client


@pytest.fixture
def genai_client():
    return _mock_client('- Springfield, IL')


@pytest.fixture
def gemini(cache_manager, genai_client):
    return GeminiService('test-key', cache_manager, text_model='text-model',
                         vision_model='vision-model', client=genai_client)


class TestExtractLocation:

    def test_returns_model_text(self, gemini, genai_client):
        assert gemini.extract_location('Flooding in Springfield') == '- Springfield, IL'
        assert genai_client.models.generate_content.call_args[1]['model'] == 'text-model'

    def test_cached(self, gemini, genai_client):
        gemini.extract_location('Flooding in Springfield')
        gemini.extract_location('Flooding in Springfield')

        assert genai_client.models.generate_content.call_count == 1

    def test_long_description_truncated(self, gemini, genai_client):
        gemini.extract_location('x' * 800)

        prompt = genai_client.models.generate_content.call_args[1]['contents']
        assert 'x' * 500 + '...' in prompt
        assert 'x' * 501 not in prompt

    def test_failure_message(self, gemini, genai_client):
        genai_client.models.generate_content.side_effect = RuntimeError('quota exceeded')
        assert gemini.extract_location('Flood') == LOCATION_FAILURE_MESSAGE

    def test_empty_text_is_failure(self, cache_manager):
        service = GeminiService('test-key', cache_manager, client=_mock_client(''))
        assert service.extract_location('Flood') == LOCATION_FAILURE_MESSAGE

    def test_missing_api_key(self, cache_manager):
        service = GeminiService(None, cache_manager)
        assert service.client is None
        assert service.extract_location('Flood') == LOCATION_FAILURE_MESSAGE


class TestVerifyImage:

    @patch('services.gemini_service.requests.get')
    def test_sends_image_part(self, mock_get, cache_manager):
        image = MagicMock()
        image.content = b'\xff\xd8\xff'
        image.headers = {'Content-Type': 'image/jpeg'}
        mock_get.return_value = image
        genai_client = _mock_client('Real flood scene')
        service = GeminiService('test-key', cache_manager, vision_model='vision-model', client=genai_client)

        with patch.object(types.Part, 'from_bytes', return_value='image-part') as from_bytes:
            result = service.verify_image('https://cdn.example.com/flood.jpg', 'Main St flooding')

        assert result == 'Real flood scene'
        from_bytes.assert_called_once_with(data=b'\xff\xd8\xff', mime_type='image/jpeg')
        kwargs = genai_client.models.generate_content.call_args[1]
        assert kwargs['model'] == 'vision-model'
        assert 'Main St flooding' in kwargs['contents'][0]
        assert kwargs['contents'][1] == 'image-part'

    @patch('services.gemini_service.requests.get')
    def test_non_image_content(self, mock_get, gemini, genai_client):
        page = MagicMock()
        page.content = b'<html>'
        page.headers = {'Content-Type': 'text/html; charset=utf-8'}
        mock_get.return_value = page

        result = gemini.verify_image('https://example.com/download')

        assert result.startswith('Could not analyze the image.')
        genai_client.models.generate_content.assert_not_called()

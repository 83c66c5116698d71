"""
Unit tests for Settings

Tests:
- BACKEND_CORS_ORIGINS accepts a plain comma separated value from env and dotenv
- A JSON list is still accepted
- The shipped .env.example loads
"""

from pathlib import Path

import pytest

from src.platform.config.core_setting import Settings
from src.platform.constant.path import BASE_DIR


@pytest.fixture(autouse=True)
def no_cors_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('BACKEND_CORS_ORIGINS', raising=False)


@pytest.mark.unit
class TestCorsOrigins:
    def test_comma_separated_env_var(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', 'http://localhost:3000, https://shop.example.com')

        settings = Settings(_env_file=None)

        assert settings.BACKEND_CORS_ORIGINS == [
            'http://localhost:3000',
            'https://shop.example.com',
        ]

    def test_single_origin_in_dotenv(self, tmp_path: Path):
        env_file = tmp_path / '.env'
        env_file.write_text('BACKEND_CORS_ORIGINS=http://localhost:3000\n')

        settings = Settings(_env_file=env_file)

        assert settings.BACKEND_CORS_ORIGINS == ['http://localhost:3000']

    def test_json_list(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', '["http://a.example.com", "http://b.example.com"]')

        settings = Settings(_env_file=None)

        assert settings.BACKEND_CORS_ORIGINS == ['http://a.example.com', 'http://b.example.com']

    def test_unset_is_empty(self):
        assert Settings(_env_file=None).BACKEND_CORS_ORIGINS == []

    def test_env_example_loads(self):
        settings = Settings(_env_file=BASE_DIR / '.env.example')

        assert settings.BACKEND_CORS_ORIGINS == ['http://localhost:3000']
        assert settings.PAYMENT_GATEWAY == 'mock'

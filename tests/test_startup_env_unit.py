# User value: This test stops a misconfigured deploy before users hit a broken tool.
import os
import unittest
from unittest.mock import patch

import startup_env

VALID_ENV = {
    "GEMINI_API_KEY": "test-key",
    "DOCUMENT_CACHE_BACKEND": "memory",
    "CORS_ALLOW_ORIGINS": "http://localhost:5173,https://docs.example.com",
}


class StartupEnvUnitTests(unittest.TestCase):
    def test_valid_env_passes_with_memory_warning(self):
        with patch.dict(os.environ, VALID_ENV, clear=True):
            with self.assertLogs("api.startup", level="WARNING") as logs:
                startup_env.validate_startup_env()
        self.assertIn("DOCUMENT_CACHE_BACKEND=memory", logs.output[0])

    def test_missing_api_key_fails(self):
        env = {**VALID_ENV, "GEMINI_API_KEY": " "}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError) as ctx:
                startup_env.validate_startup_env()
        self.assertIn("GEMINI_API_KEY is required", str(ctx.exception))

    def test_redis_backend_requires_redis_url(self):
        env = {**VALID_ENV, "DOCUMENT_CACHE_BACKEND": "redis", "REDIS_URL": "http://cache:6379"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError) as ctx:
                startup_env.validate_startup_env()
        self.assertIn("REDIS_URL must start with redis://", str(ctx.exception))

    def test_unknown_backend_fails(self):
        env = {**VALID_ENV, "DOCUMENT_CACHE_BACKEND": "disk"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError):
                startup_env.validate_startup_env()

    # User value: a wildcard CORS origin is refused so only known frontends can call the API.
    def test_wildcard_cors_origin_rejected(self):
        errors = []
        startup_env._validate_cors_allow_origins("*,https://ok.example.com", errors)
        self.assertEqual(len(errors), 1)
        self.assertIn("must not contain '*'", errors[0])

    def test_positive_numbers(self):
        errors = []
        with patch.dict(os.environ, {"PAGE_RENDER_DPI": "0", "GENAI_TIMEOUT_SEC": "abc"}, clear=True):
            startup_env._validate_positive_number("PAGE_RENDER_DPI", errors)
            startup_env._validate_positive_number("GENAI_TIMEOUT_SEC", errors)
            startup_env._validate_positive_number("REMOTE_FETCH_TIMEOUT_SEC", errors)
        self.assertEqual(errors, ["PAGE_RENDER_DPI must be greater than 0", "GENAI_TIMEOUT_SEC must be a number"])

    def test_all_errors_reported_together(self):
        with patch.dict(os.environ, {"FEATURE_URL_INPUT": "perhaps"}, clear=True):
            with self.assertRaises(RuntimeError) as ctx:
                startup_env.validate_startup_env()
        message = str(ctx.exception)
        self.assertIn("GEMINI_API_KEY is required", message)
        self.assertIn("CORS_ALLOW_ORIGINS is required", message)
        self.assertIn("FEATURE_URL_INPUT must be one of", message)


if __name__ == "__main__":
    unittest.main()

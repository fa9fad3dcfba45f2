from types import SimpleNamespace

import httpx
import openai
import pytest

from tutor.errors import InvalidCredentialError, TransientServerError
from tutor.models import LLMSettings
from tutor.services import llm_openai
from tutor.services.llm_openai import OpenAILLMClient, translate_error

REQUEST = httpx.Request("POST", "https://example.test/v1/chat/completions")


def status_error(cls, status, message="error"):
    return cls(message, response=httpx.Response(status, request=REQUEST), body=None)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(llm_openai.time, "sleep", lambda s: None)


def completion(text):
    return SimpleNamespace(
        model="gemini-2.0-flash",
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=34),
    )


def make_client(create=None):
    llm = OpenAILLMClient("AIzaSyTEST-0123456789")
    llm.client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
    )
    return llm


def test_missing_key_rejected():
    with pytest.raises(ValueError):
        OpenAILLMClient("")


@pytest.mark.parametrize(
    "exc, expected",
    [
        (status_error(openai.AuthenticationError, 401), InvalidCredentialError),
        (status_error(openai.PermissionDeniedError, 403), InvalidCredentialError),
        (
            status_error(openai.BadRequestError, 400, "API key not valid. Please pass a valid API key."),
            InvalidCredentialError,
        ),
        (status_error(openai.InternalServerError, 500), TransientServerError),
        (status_error(openai.APIStatusError, 503), TransientServerError),
        (status_error(openai.RateLimitError, 429), TransientServerError),
        (openai.APIConnectionError(request=REQUEST), TransientServerError),
    ],
)
def test_translate_error(exc, expected):
    assert isinstance(translate_error(exc), expected)


def test_translate_error_passes_through_other_errors():
    exc = status_error(openai.BadRequestError, 400, "bad temperature")
    assert translate_error(exc) is exc


def test_chat_sends_system_and_params():
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return completion("Hello!")

    llm = make_client(create=create)
    text, meta = llm.chat(
        [{"role": "user", "content": "Hi"}],
        LLMSettings(model="gemini-2.0-flash", max_tokens=5),
        system="Be kind.",
    )

    assert text == "Hello!"
    assert meta == {"model": "gemini-2.0-flash", "tokens_in": 12, "tokens_out": 34}
    assert calls[0]["messages"][0] == {"role": "system", "content": "Be kind."}
    assert calls[0]["temperature"] == 0.7
    assert calls[0]["top_p"] == 0.95
    assert calls[0]["max_tokens"] == 5


def test_chat_retries_transient_errors():
    attempts = []

    def create(**kwargs):
        attempts.append(1)
        if len(attempts) < 3:
            raise status_error(openai.InternalServerError, 500)
        return completion("ok")

    llm = make_client(create=create)
    text, _ = llm.chat([{"role": "user", "content": "Hi"}], LLMSettings(model="m"))
    assert text == "ok"
    assert len(attempts) == 3


def test_chat_gives_up_as_transient_error():
    def create(**kwargs):
        raise status_error(openai.InternalServerError, 500)

    llm = make_client(create=create)
    with pytest.raises(TransientServerError):
        llm.chat([{"role": "user", "content": "Hi"}], LLMSettings(model="m"))


def test_auth_error_is_not_retried():
    attempts = []

    def create(**kwargs):
        attempts.append(1)
        raise status_error(openai.AuthenticationError, 401)

    llm = make_client(create=create)
    with pytest.raises(InvalidCredentialError):
        llm.chat([{"role": "user", "content": "Hi"}], LLMSettings(model="m"))
    assert len(attempts) == 1


def test_speech_goes_to_native_speech_client():
    calls = []

    class SpeechClient:
        def synthesize(self, text, *, voice, model):
            calls.append({"text": text, "voice": voice, "model": model})
            return b"\x01\x00\x02\x00"

    llm = make_client()
    llm.speech_client = SpeechClient()
    assert llm.speech("Hello", voice="Kore", model="tts") == b"\x01\x00\x02\x00"
    assert calls == [{"text": "Hello", "voice": "Kore", "model": "tts"}]


def test_speech_client_shares_key_and_retry_schedule():
    llm = OpenAILLMClient("AIzaSyTEST-0123456789", speech_base_url="https://tts.example/v1")
    assert llm.speech_client.retry_delays == llm_openai.RETRY_DELAYS
    assert llm.speech_client.http.headers["x-goog-api-key"] == "AIzaSyTEST-0123456789"
    assert str(llm.speech_client.http.base_url) == "https://tts.example/v1/"

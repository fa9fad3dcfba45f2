"""
UI layer
Purpose: Streamlit-only glue. Renders widgets, collects user inputs, and
delegates all work to the controller. Keeps UI concerns (layout/state
widgets) separate from conversation logic so that logic can be unit tested
without Streamlit.
"""

import hashlib

import streamlit as st
from audio_recorder_streamlit import audio_recorder

from tutor.config import AppConfig, configure_logging, load_config
from tutor.controller import TutorSessionController
from tutor.models import Level, Role, TOPIC_CATALOG, VOICES
from tutor.persistence import CredentialStore, JsonFileStore, TranscriptRepository
from tutor.services.llm_openai import OpenAILLMClient
from tutor.services.playback import AudioPlaybackEngine, BrowserAutoplayOutput
from tutor.services.tutor_client import RemoteTutorClient
from tutor.services.voice import MicrophoneEngine, RecordedAudioEngine, SpeechToTextBridge


# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="AI Teacher Pro",
    page_icon="🎓",
    layout="centered",
    initial_sidebar_state="collapsed",
)

# ---------------------------
# UI constants
# ---------------------------
LEVELS = [Level.BEGINNER, Level.INTERMEDIATE, Level.ADVANCED]
TOPICS = list(TOPIC_CATALOG.values())
INPUT_LANGS = {"en-US": "EN", "ko-KR": "KO"}

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("config", None)
st_session.setdefault("store", None)
st_session.setdefault("credentials", None)
st_session.setdefault("controller", None)
st_session.setdefault("audio_output", None)
st_session.setdefault("recognition_engine", None)
st_session.setdefault("input_lang", "en-US")
st_session.setdefault("last_voice_sig", None)
st_session.setdefault("api_key_error", "")


# ---------------------------
# Helpers
# ---------------------------
def get_config() -> AppConfig:
    """Load config and logging once per browser session."""
    if st_session.config is None:
        config = load_config()
        configure_logging(config.log_level)
        st_session.config = config
    return st_session.config


def client_factory(config: AppConfig):
    def make(api_key: str) -> OpenAILLMClient:
        return OpenAILLMClient(
            api_key,
            base_url=config.base_url,
            speech_base_url=config.speech_base_url,
            timeout=config.request_timeout,
        )

    return make


def get_credentials() -> CredentialStore:
    if st_session.credentials is None:
        config = get_config()
        st_session.store = JsonFileStore(config.storage_path)
        st_session.credentials = CredentialStore(
            st_session.store, client_factory(config), probe_model=config.chat_model
        )
    return st_session.credentials


def make_audio_output(config: AppConfig):
    if config.audio_output == "device":
        from tutor.services.audio_device import SoundDeviceOutput

        return SoundDeviceOutput()
    return BrowserAutoplayOutput()


def make_recognition_engine(config: AppConfig):
    if config.recognition == "microphone":
        return MicrophoneEngine()
    return RecordedAudioEngine()


def get_controller() -> TutorSessionController:
    """Return the controller object, building it on first use."""
    if st_session.controller is None:
        config = get_config()
        credentials = get_credentials()
        st_session.audio_output = make_audio_output(config)
        st_session.recognition_engine = make_recognition_engine(config)
        st_session.controller = TutorSessionController(
            tutor=RemoteTutorClient(credentials, client_factory(config), config),
            player=AudioPlaybackEngine(st_session.audio_output),
            repository=TranscriptRepository(st_session.store),
            recognizer=SpeechToTextBridge(st_session.recognition_engine),
        )
    return st_session.controller


def submit_api_key(candidate: str):
    candidate = (candidate or "").strip()
    if not candidate:
        st_session.api_key_error = "API 키를 입력해주세요."
        return
    if get_credentials().submit(candidate):
        st_session.api_key_error = ""
    else:
        st_session.api_key_error = "유효하지 않은 API 키입니다. 다시 확인해주세요."


def change_api_key():
    """Forget the stored key; the next run shows the key screen."""
    controller = st_session.controller
    if controller is not None:
        controller.stop_audio()
    get_credentials().clear()


def render_browser_audio():
    output = st_session.audio_output
    if isinstance(output, BrowserAutoplayOutput):
        html = output.html()
        if html:
            st.html(html)


def render_api_key_screen():
    st.title("🔑 AI Teacher Pro")
    st.caption("시작하려면 Gemini API 키를 입력해주세요")
    with st.form("api_key_form", clear_on_submit=True):
        candidate = st.text_input("API key", type="password", placeholder="AIza...")
        submitted = st.form_submit_button("시작하기 →", use_container_width=True)
    if submitted:
        with st.spinner("검증 중..."):
            submit_api_key(candidate)
        if not st_session.api_key_error:
            st.rerun()
    if st_session.api_key_error:
        st.error(st_session.api_key_error, icon="⚠️")


def render_sidebar(controller: TutorSessionController):
    settings = controller.state.settings
    with st.sidebar:
        st.markdown("### English Level")
        level = st.radio(
            "English Level",
            LEVELS,
            index=LEVELS.index(settings.level),
            format_func=lambda lv: lv.value,
            label_visibility="collapsed",
        )
        if level != settings.level:
            with st.spinner("Updating level…"):
                controller.change_level(level)
            st.rerun()

        st.markdown("### Teacher Voice")
        for voice in VOICES:
            vcol1, vcol2 = st.columns([4, 1])
            with vcol1:
                label = f"✅ {voice}" if settings.voice == voice else voice
                if st.button(label, key=f"voice_{voice}", use_container_width=True):
                    controller.change_voice(voice)
                    st.rerun()
            with vcol2:
                icon = "⏹️" if controller.previewing_voice == voice else "▶️"
                if st.button(icon, key=f"preview_{voice}"):
                    controller.preview_voice(voice)
                    st.rerun()

        st.divider()
        if st.button("🔄 Reset Chat", use_container_width=True):
            controller.reset_conversation()
            st.rerun()
        if st.button("🔑 API 키 변경", use_container_width=True):
            change_api_key()
            st.rerun()
        st.caption(f"Key: {get_credentials().masked()}")


def render_topic_picker(controller: TutorSessionController):
    st.markdown("## 어떤 상황을 연습할까요?")
    cols = st.columns(3)
    for i, info in enumerate(TOPICS):
        with cols[i % 3]:
            if st.button(
                f"**{info.name}**\n\n{info.description}",
                key=f"topic_{info.topic.value}",
                use_container_width=True,
            ):
                with st.spinner("Teacher is preparing…"):
                    controller.select_topic(info.topic)
                st.rerun()


def render_transcript(controller: TutorSessionController):
    playing = controller.currently_playing_id
    for msg in controller.get_history():
        with st.chat_message(msg.role.value):
            st.markdown(msg.content)
            if msg.role == Role.USER:
                if st.button("↩️ 여기서 다시", key=f"rewind_{msg.id}"):
                    controller.restart_from_message(msg.id)
                    st.rerun()
                continue
            if not msg.has_audio:
                continue
            bcol1, bcol2, bcol3 = st.columns(3)
            with bcol1:
                label = "⏹️ Stop" if playing == msg.id else "🔊 Listen"
                if st.button(label, key=f"replay_{msg.id}"):
                    with st.spinner("Preparing audio…"):
                        controller.replay(msg.id)
                    st.rerun()
            with bcol2:
                if st.button("🐢 Slow", key=f"slow_{msg.id}"):
                    with st.spinner("Preparing audio…"):
                        controller.replay(msg.id, slow=True)
                    st.rerun()
            with bcol3:
                if st.button("↩️ Retry", key=f"retry_{msg.id}"):
                    controller.restart_from_message(msg.id)
                    st.rerun()


def render_input(controller: TutorSessionController):
    icol1, icol2 = st.columns([1, 1])
    with icol1:
        lang = st.segmented_control(
            "Input language",
            list(INPUT_LANGS),
            default=st_session.input_lang,
            format_func=lambda tag: INPUT_LANGS[tag],
        )
        if lang:
            st_session.input_lang = lang
    engine = st_session.recognition_engine
    with icol2:
        if isinstance(engine, RecordedAudioEngine):
            wav = audio_recorder(
                pause_threshold=2,
                sample_rate=16_000,
                text="",
                icon_size="2x",
            )
        else:
            wav = None
            if st.button("🎙️ Speak", disabled=controller.state.loading):
                # the microphone engine listens for one utterance inside start
                with st.spinner("Listening…"):
                    controller.start_listening(st_session.input_lang)
                st.rerun()

    if wav:
        sig = hashlib.sha1(wav).hexdigest()
        if sig != st_session.last_voice_sig:
            st_session.last_voice_sig = sig
            with st.spinner("Listening…"):
                if controller.start_listening(st_session.input_lang):
                    engine.feed(wav)
            st.rerun()

    raw = st.chat_input("Type in English or Korean…", disabled=controller.state.loading)
    if raw is not None and raw.strip():
        with st.spinner("Teacher is thinking…"):
            controller.handle_send(raw)
        st.rerun()


# ---------------------------
# Main
# ---------------------------
credentials = get_credentials()
if not credentials.is_configured():
    render_api_key_screen()
    st.stop()

controller = get_controller()
render_sidebar(controller)

st.title("🎓 AI Teacher Pro")
if controller.state.topic_active:
    info = TOPIC_CATALOG[controller.state.settings.topic]
    st.caption(f"{info.name} · {controller.state.settings.level.value}")
    if st.button("📍 주제 변경"):
        controller.reset_conversation()
        st.rerun()

alert = controller.take_alert()
if alert:
    st.warning(alert, icon="🎙️")

render_browser_audio()

if not controller.state.topic_active:
    render_topic_picker(controller)
else:
    render_transcript(controller)
    if controller.state.interim_transcript:
        st.caption(controller.state.interim_transcript)
    render_input(controller)

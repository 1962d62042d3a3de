"""
AI capability client — embeddings and grounded answer generation.

Primary provider:
  Oracle Generative AI Inference via OCI SDK + signed requests using ~/.oci/config.
  Used for both embedText and chat.

Optional fallback (generation only):
  Anthropic, when OCI is not configured.

One AIClient is built at application startup and handed to the services that
need it. Callers must treat both capabilities as optional: ``embed`` returns
None and ``generate`` returns None when the provider is missing.
"""

import asyncio
import json
import logging
from pathlib import Path

import anthropic
import oci

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Request / response builders
# ─────────────────────────────────────────────────────────────────────────────

def _is_cohere(model_id: str, api_format: str) -> bool:
    forced = api_format.strip().upper()
    if forced == "COHERE":
        return True
    if forced == "GENERIC":
        return False
    return model_id.lower().startswith("cohere.")


def build_chat_body(
    cfg: Settings,
    system: str,
    user_message: str,
    max_tokens: int,
    temperature: float,
) -> dict:
    """Build JSON body for POST /20231130/actions/chat with a single user turn."""
    model_id = cfg.ORACLE_GENAI_MODEL
    serving_mode = {"servingType": "ON_DEMAND", "modelId": model_id}

    if _is_cohere(model_id, cfg.ORACLE_GENAI_API_FORMAT):
        # Cohere: single "message" string + preamble
        chat_req: dict = {
            "apiFormat": "COHERE",
            "message": user_message,
            "maxTokens": max_tokens,
            "temperature": temperature,
            "isStream": False,
        }
        if system:
            chat_req["preambleOverride"] = system
    else:
        # Generic / Llama: messages array + systemMessage
        chat_req = {
            "apiFormat": "GENERIC",
            "messages": [{
                "role": "USER",
                "content": [{"type": "TEXT", "text": user_message}],
            }],
            "maxTokens": max_tokens,
            "temperature": temperature,
            "isStream": False,
        }
        if system:
            chat_req["systemMessage"] = system

    body: dict = {"servingMode": serving_mode, "chatRequest": chat_req}
    if cfg.ORACLE_GENAI_COMPARTMENT_ID:
        body["compartmentId"] = cfg.ORACLE_GENAI_COMPARTMENT_ID
    return body


def build_embed_body(cfg: Settings, text: str) -> dict:
    """Build JSON body for POST /20231130/actions/embedText with one input."""
    body: dict = {
        "inputs": [text],
        "servingMode": {
            "servingType": "ON_DEMAND",
            "modelId": cfg.EMBEDDING_MODEL,
        },
    }
    if cfg.ORACLE_GENAI_COMPARTMENT_ID:
        body["compartmentId"] = cfg.ORACLE_GENAI_COMPARTMENT_ID
    return body


def extract_chat_text(response_json: dict) -> str:
    """Pull plain text from an /actions/chat response."""
    chat_resp = response_json.get("chatResponse", {})
    fmt = chat_resp.get("apiFormat", "GENERIC")
    if fmt == "COHERE":
        return chat_resp.get("text", "")
    choices = chat_resp.get("choices", [])
    if not choices:
        return ""
    content = choices[0].get("message", {}).get("content", [])
    if isinstance(content, list) and content:
        return content[0].get("text", "")
    return str(content)


def extract_embedding(response_json: dict) -> list[float] | None:
    embeddings = response_json.get("embeddings") or []
    if not embeddings or not embeddings[0]:
        return None
    return [float(v) for v in embeddings[0]]


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────

class AIClient:
    """Embedding + generation capability backed by Oracle GenAI (and Anthropic)."""

    def __init__(self, cfg: Settings | None = None):
        self.cfg = cfg or default_settings
        self._oci_client = None
        self._anthropic_client = None

        if self._oracle_settings_present():
            try:
                self._oci_client = self._build_oci_client()
            except Exception:
                logger.exception("Could not load OCI configuration; Oracle GenAI disabled")

        if self.cfg.ANTHROPIC_API_KEY:
            self._anthropic_client = anthropic.AsyncAnthropic(api_key=self.cfg.ANTHROPIC_API_KEY)

    # ── Status helpers ────────────────────────────────────────────────────────

    def _oracle_settings_present(self) -> bool:
        # Request signing needs OCI config/profile + compartment + model.
        c = self.cfg
        return bool(
            c.OCI_CONFIG_FILE and c.OCI_CONFIG_PROFILE
            and c.ORACLE_GENAI_MODEL and c.ORACLE_GENAI_COMPARTMENT_ID
        )

    @property
    def oracle_configured(self) -> bool:
        return self._oci_client is not None

    @property
    def anthropic_configured(self) -> bool:
        return self._anthropic_client is not None

    @property
    def can_embed(self) -> bool:
        return self.oracle_configured

    @property
    def can_generate(self) -> bool:
        return self.oracle_configured or self.anthropic_configured

    def provider_name(self) -> str:
        if self.oracle_configured:
            return f"Oracle GenAI OCI-Signed ({self.cfg.ORACLE_GENAI_MODEL})"
        if self.anthropic_configured:
            return f"Anthropic ({self.cfg.ANTHROPIC_MODEL})"
        return "none"

    # ── Oracle GenAI — OCI signed requests ────────────────────────────────────

    def _build_oci_client(self):
        cfg_file = str(Path(self.cfg.OCI_CONFIG_FILE).expanduser())
        oci_cfg = oci.config.from_file(file_location=cfg_file, profile_name=self.cfg.OCI_CONFIG_PROFILE)
        if self.cfg.ORACLE_GENAI_BASE_URL:
            endpoint = self.cfg.ORACLE_GENAI_BASE_URL.rstrip("/")
        else:
            region = oci_cfg.get("region", "us-chicago-1")
            endpoint = f"https://inference.generativeai.{region}.oci.oraclecloud.com"
        return oci.generative_ai_inference.GenerativeAiInferenceClient(
            config=oci_cfg,
            service_endpoint=endpoint,
            timeout=(10.0, 300.0),
        )

    def _oci_post(self, path: str, body: dict) -> dict:
        """Perform a signed POST via the OCI base client and return the JSON dict."""
        # OCI SDK already prefixes the API version path (/20231130).
        response = self._oci_client.base_client.call_api(
            resource_path=path,
            method="POST",
            header_params={"content-type": "application/json"},
            body=body,
            response_type="str",
        )
        text = response.data if isinstance(response.data, str) else str(response.data)
        return json.loads(text)

    # ── Public capabilities ───────────────────────────────────────────────────

    async def embed(self, text: str) -> list[float] | None:
        """Embed one string. Returns None when embeddings are unavailable.

        Input is truncated to EMBEDDING_MAX_CHARS. Failures are logged, never
        raised, and not retried.
        """
        if not self.can_embed:
            logger.warning("Embedding provider not configured, skipping embedding generation")
            return None

        body = build_embed_body(self.cfg, text[: self.cfg.EMBEDDING_MAX_CHARS])
        try:
            data = await asyncio.to_thread(self._oci_post, "/actions/embedText", body)
        except Exception as e:
            logger.warning("Error generating embedding: %s", e)
            return None

        try:
            vector = extract_embedding(data)
        except (TypeError, ValueError, AttributeError, KeyError, IndexError) as e:
            logger.warning("Malformed embedding response: %s", e)
            return None
        if vector is None:
            logger.warning("Embedding response carried no vector")
        return vector

    async def generate(self, system: str, user_message: str) -> str | None:
        """Single-turn generation. Returns None when no provider is configured.

        Provider errors propagate so the caller can decide how to degrade.
        Oracle GenAI is always preferred over Anthropic when both are set.
        """
        if self.oracle_configured:
            body = build_chat_body(
                self.cfg, system, user_message,
                max_tokens=self.cfg.CHAT_MAX_TOKENS,
                temperature=self.cfg.CHAT_TEMPERATURE,
            )
            data = await asyncio.to_thread(self._oci_post, "/actions/chat", body)
            return extract_chat_text(data)

        if self.anthropic_configured:
            response = await self._anthropic_client.messages.create(
                model=self.cfg.ANTHROPIC_MODEL,
                max_tokens=self.cfg.CHAT_MAX_TOKENS,
                temperature=self.cfg.CHAT_TEMPERATURE,
                system=system,
                messages=[{"role": "user", "content": user_message}],
            )
            return response.content[0].text

        return None

    async def health_check(self) -> dict:
        """Live connectivity test — called by /api/health/ai."""
        provider = self.provider_name()
        if provider == "none":
            return {
                "provider": "none",
                "status": "unconfigured",
                "message": (
                    "Set OCI_CONFIG_FILE, OCI_CONFIG_PROFILE, "
                    "ORACLE_GENAI_COMPARTMENT_ID and ORACLE_GENAI_MODEL in backend/.env."
                ),
            }

        try:
            reply = await self.generate("You are a test assistant.", "Reply with exactly: OK")
            return {
                "provider": provider,
                "status": "ok",
                "test_reply": (reply or "").strip(),
                "embeddings": "available" if self.can_embed else "unavailable",
            }
        except Exception as e:
            return {"provider": provider, "status": "error", "error": str(e)}

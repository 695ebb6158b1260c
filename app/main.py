from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException

from app.config import load_policy_config
from app.core.placeholders import DATA_PLACEHOLDERS, PRONOUN_PLACEHOLDERS
from app.masking.payload import DIRECTIONS
from app.models.api import (
    CapabilitiesResponse,
    ChatRequest,
    ChatResponse,
    ContentItem,
    LeakFinding,
    MaskRequest,
    MaskResponse,
    OutputItem,
    OutputScope,
    TransformRequest,
    TransformResponse,
    UnmaskRequest,
    UnmaskResponse,
    UsageInfo,
    ValidateRequest,
    ValidateResponse,
)
from app.policy import PolicyResolver
from app.proxy.upstream import UpstreamClient
from app.settings import settings
from app.shield import (
    ChatMessage,
    ItemLeakResult,
    ShieldBlockedError,
    ShieldError,
    ShieldService,
    ShieldUpstreamError,
    TextInput,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)
if logger.isEnabledFor(logging.DEBUG):
    for noisy_logger in ("httpcore", "httpx"):
        logging.getLogger(noisy_logger).setLevel(logging.INFO)

app = FastAPI(title="PII Shield Service", version="0.1.0")

_SUPPORTED_ACTIONS = ["NONE", "MASKED", "UNMASKED", "FLAGGED", "BLOCKED"]
_SUPPORTED_OUTPUT_SCOPES = ["INTERVENTIONS", "FULL"]


def _to_inputs(items: list[ContentItem]) -> list[TextInput]:
    return [TextInput(id=item.id, text=item.text) for item in items]


def _debug_log(*, stage: str, policy_id: str | None, input_count: int, output_count: int) -> None:
    # Counts only: request bodies carry identifying data.
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug(
        "shield stage=%s policy_id=%s input_items=%d output_items=%d",
        stage,
        policy_id,
        input_count,
        output_count,
    )


def _leak_findings(items: list[ItemLeakResult], *, output_scope: OutputScope) -> list[LeakFinding]:
    findings: list[LeakFinding] = []
    for item in items:
        if item.leak.clean:
            continue
        findings.append(
            LeakFinding(
                item_id=item.id,
                count=len(item.leak.offending_values),
                offending_values=list(item.leak.offending_values) if output_scope == "FULL" else [],
            )
        )
    return findings


def _usage(input_content: list[ContentItem], output_items: list[OutputItem]) -> UsageInfo:
    return UsageInfo(
        input_items=len(input_content),
        input_chars=sum(len(item.text) for item in input_content),
        output_items=len(output_items),
        output_chars=sum(len(item.text) for item in output_items),
    )


def _shield() -> ShieldService:
    shield = getattr(app.state, "shield", None)
    if shield is None:
        raise HTTPException(status_code=503, detail="policy is not loaded")
    return shield


def _load_runtime() -> None:
    config = load_policy_config(settings.policy_path)
    resolver = PolicyResolver(config)
    app.state.policy_config = config
    app.state.policy_resolver = resolver
    app.state.shield = ShieldService(policy_resolver=resolver, upstream=app.state.upstream)
    logger.info(
        "policy loaded from %s, policies=%s, default=%s",
        settings.policy_path,
        ",".join(resolver.list_policies()),
        config.default_policy,
    )


@app.on_event("startup")
async def startup() -> None:
    app.state.shield = None
    app.state.policy_load_error = None
    app.state.upstream = UpstreamClient(
        base_url=settings.upstream_base_url,
        api_key=settings.upstream_api_key,
        timeout_seconds=settings.upstream_timeout_s,
    )
    try:
        _load_runtime()
    except Exception as exc:
        app.state.policy_load_error = str(exc)
        logger.exception("policy load failed: %s", exc)


@app.on_event("shutdown")
async def shutdown() -> None:
    upstream = getattr(app.state, "upstream", None)
    if upstream is not None:
        await upstream.close()


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
async def readyz() -> dict[str, str]:
    if getattr(app.state, "shield", None) is None:
        load_error = str(getattr(app.state, "policy_load_error", None) or "policy is not loaded")
        raise HTTPException(status_code=503, detail=f"not ready: {load_error}")
    return {"status": "ready"}


@app.post("/admin/reload")
async def reload_policy() -> dict[str, Any]:
    try:
        _load_runtime()
    except Exception as exc:
        raise HTTPException(status_code=400, detail=f"policy reload failed: {exc}") from exc
    return {
        "status": "reloaded",
        "policy_path": settings.policy_path,
        "policies": app.state.policy_resolver.list_policies(),
    }


@app.get("/v1/shield/capabilities", response_model=CapabilitiesResponse)
async def capabilities_endpoint() -> CapabilitiesResponse:
    resolver = getattr(app.state, "policy_resolver", None)
    return CapabilitiesResponse(
        service=settings.service_name,
        api_version="v1",
        placeholders=[placeholder.value for placeholder in DATA_PLACEHOLDERS],
        pronoun_placeholders=[placeholder.value for placeholder in PRONOUN_PLACEHOLDERS],
        actions=_SUPPORTED_ACTIONS,
        directions=list(DIRECTIONS),
        output_scopes=_SUPPORTED_OUTPUT_SCOPES,
        policies=resolver.list_policies() if resolver is not None else [],
    )


@app.post("/v1/shield/mask", response_model=MaskResponse)
async def mask_endpoint(request: MaskRequest) -> MaskResponse:
    shield = _shield()
    try:
        result = shield.mask_items(
            subject=request.subject.to_record(),
            items=_to_inputs(request.content),
            policy_name=request.policy_id,
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ShieldBlockedError as exc:
        _debug_log(stage="mask_blocked", policy_id=request.policy_id, input_count=len(request.content), output_count=0)
        policy_id, _ = app.state.policy_resolver.resolve_policy(policy_name=request.policy_id)
        return MaskResponse(
            action="BLOCKED",
            policy_id=policy_id,
            placeholders_count=0,
            outputs=[],
            findings=_leak_findings(exc.leaks, output_scope=request.output_scope),
            usage=_usage(request.content, []),
        )
    except ShieldError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    output_items = [OutputItem(id=item.id, text=item.text) for item in result.items]
    findings = _leak_findings(
        [ItemLeakResult(id=item.id, leak=item.leak) for item in result.items],
        output_scope=request.output_scope,
    )
    changed = any(item.text != original.text for item, original in zip(result.items, request.content))
    if findings:
        action = "FLAGGED"
    elif changed:
        action = "MASKED"
    else:
        action = "NONE"
    _debug_log(stage="mask", policy_id=result.policy_name, input_count=len(request.content), output_count=len(output_items))
    return MaskResponse(
        action=action,
        policy_id=result.policy_name,
        placeholders_count=result.placeholders_count,
        outputs=output_items,
        findings=findings,
        usage=_usage(request.content, output_items),
    )


@app.post("/v1/shield/unmask", response_model=UnmaskResponse)
async def unmask_endpoint(request: UnmaskRequest) -> UnmaskResponse:
    shield = _shield()
    try:
        result = shield.unmask_items(
            subject=request.subject.to_record(),
            items=_to_inputs(request.content),
            policy_name=request.policy_id,
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    output_items = [OutputItem(id=item.id, text=item.text, replacements=item.replacements) for item in result.items]
    _debug_log(stage="unmask", policy_id=request.policy_id, input_count=len(request.content), output_count=len(output_items))
    return UnmaskResponse(
        action="UNMASKED" if result.replacements > 0 else "NONE",
        replacements=result.replacements,
        outputs=output_items,
        usage=_usage(request.content, output_items),
    )


@app.post("/v1/shield/validate", response_model=ValidateResponse)
async def validate_endpoint(request: ValidateRequest) -> ValidateResponse:
    shield = _shield()
    try:
        result = shield.validate_items(
            subject=request.subject.to_record(),
            items=_to_inputs(request.content),
            policy_name=request.policy_id,
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    findings = _leak_findings(result.items, output_scope=request.output_scope)
    return ValidateResponse(clean=not findings, findings=findings)


@app.post("/v1/shield/transform", response_model=TransformResponse)
async def transform_endpoint(request: TransformRequest) -> TransformResponse:
    shield = _shield()
    try:
        payload = shield.transform_payload(
            subject=request.subject.to_record(),
            payload=request.payload,
            direction=request.direction,
            policy_name=request.policy_id,
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TransformResponse(direction=request.direction, payload=payload)


@app.post("/v1/shield/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest) -> ChatResponse:
    shield = _shield()
    try:
        result = await shield.chat(
            subject=request.subject.to_record(),
            messages=[ChatMessage(role=message.role, content=message.content) for message in request.messages],
            policy_name=request.policy_id,
            model=request.model or settings.upstream_model,
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ShieldBlockedError as exc:
        policy_id, _ = app.state.policy_resolver.resolve_policy(policy_name=request.policy_id)
        return ChatResponse(
            action="BLOCKED",
            policy_id=policy_id,
            findings=_leak_findings(exc.leaks, output_scope=request.output_scope),
        )
    except ShieldUpstreamError as exc:
        logger.error("generation service failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ShieldError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ChatResponse(
        action="FLAGGED" if result.findings_count else "MASKED",
        policy_id=result.policy_name,
        masked_response=result.masked_text,
        response=result.text,
        finish_reason=result.finish_reason,
    )


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.masking.leaks import validate_no_leak
from app.core.masking.mapping import MappingTable, build_mapping
from app.core.masking.reversible import mask, unmask_with_count
from app.masking.payload import Direction, transform_structured
from app.models.entities import LeakReport, SubjectRecord
from app.policy import PolicyResolver
from app.proxy.upstream import UpstreamClient, first_choice

logger = logging.getLogger(__name__)


class ShieldError(RuntimeError):
    pass


class ShieldBlockedError(ShieldError):
    def __init__(self, message: str, findings_count: int, leaks: list["ItemLeakResult"] | None = None) -> None:
        super().__init__(message)
        self.findings_count = findings_count
        self.leaks = list(leaks or [])


class ShieldUpstreamError(ShieldError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class TextInput:
    id: str
    text: str


@dataclass(slots=True)
class ChatMessage:
    role: str
    content: str


@dataclass(slots=True)
class ItemLeakResult:
    id: str
    leak: LeakReport


@dataclass(slots=True)
class ItemMaskResult:
    id: str
    text: str
    leak: LeakReport


@dataclass(slots=True)
class MaskOperationResult:
    policy_name: str
    mode: str
    placeholders_count: int
    findings_count: int
    items: list[ItemMaskResult]


@dataclass(slots=True)
class ItemUnmaskResult:
    id: str
    text: str
    replacements: int


@dataclass(slots=True)
class UnmaskOperationResult:
    replacements: int
    items: list[ItemUnmaskResult]


@dataclass(slots=True)
class ValidateOperationResult:
    findings_count: int
    items: list[ItemLeakResult]


@dataclass(slots=True)
class ChatOperationResult:
    policy_name: str
    findings_count: int
    masked_messages: list[ChatMessage]
    masked_text: str
    text: str
    finish_reason: str | None


class ShieldService:
    """Request-level wrapper around the substitution engine.

    A mapping table is built from the subject record on every call and
    dropped afterwards; nothing about a subject outlives the request.
    """

    def __init__(self, policy_resolver: PolicyResolver, upstream: UpstreamClient | None = None) -> None:
        self._policy_resolver = policy_resolver
        self._upstream = upstream

    def _table(self, subject: SubjectRecord, policy_name: str | None) -> tuple[str, str, MappingTable]:
        resolved_name, policy = self._policy_resolver.resolve_policy(policy_name=policy_name)
        table = build_mapping(subject, locale_date_format=policy.locale_date_format)
        return resolved_name, policy.mode, table

    @staticmethod
    def _enforce(policy_name: str, mode: str, leaks: list[ItemLeakResult]) -> int:
        findings_count = sum(len(item.leak.offending_values) for item in leaks)
        if not findings_count:
            return 0
        if mode == "block":
            raise ShieldBlockedError(
                "blocked by policy: identifying data survived masking",
                findings_count=findings_count,
                leaks=[item for item in leaks if not item.leak.clean],
            )
        logger.warning(
            "identifying data survived masking policy=%s items=%d findings=%d",
            policy_name,
            sum(1 for item in leaks if not item.leak.clean),
            findings_count,
        )
        return findings_count

    def mask_items(
        self,
        subject: SubjectRecord,
        items: list[TextInput],
        policy_name: str | None = None,
    ) -> MaskOperationResult:
        resolved_name, mode, table = self._table(subject, policy_name)

        output_items: list[ItemMaskResult] = []
        for item in items:
            masked = mask(item.text, table)
            output_items.append(ItemMaskResult(id=item.id, text=masked, leak=validate_no_leak(masked, table)))

        findings_count = self._enforce(
            resolved_name,
            mode,
            [ItemLeakResult(id=item.id, leak=item.leak) for item in output_items],
        )
        return MaskOperationResult(
            policy_name=resolved_name,
            mode=mode,
            placeholders_count=len(table),
            findings_count=findings_count,
            items=output_items,
        )

    def unmask_items(
        self,
        subject: SubjectRecord,
        items: list[TextInput],
        policy_name: str | None = None,
    ) -> UnmaskOperationResult:
        _, _, table = self._table(subject, policy_name)

        replacements_total = 0
        output_items: list[ItemUnmaskResult] = []
        for item in items:
            result = unmask_with_count(item.text, table)
            replacements_total += result.replaced
            output_items.append(ItemUnmaskResult(id=item.id, text=result.text, replacements=result.replaced))
        return UnmaskOperationResult(replacements=replacements_total, items=output_items)

    def validate_items(
        self,
        subject: SubjectRecord,
        items: list[TextInput],
        policy_name: str | None = None,
    ) -> ValidateOperationResult:
        _, _, table = self._table(subject, policy_name)
        results = [ItemLeakResult(id=item.id, leak=validate_no_leak(item.text, table)) for item in items]
        return ValidateOperationResult(
            findings_count=sum(len(item.leak.offending_values) for item in results),
            items=results,
        )

    def transform_payload(
        self,
        subject: SubjectRecord,
        payload: Any,
        direction: Direction,
        policy_name: str | None = None,
    ) -> Any:
        _, _, table = self._table(subject, policy_name)
        return transform_structured(payload, table, direction)

    async def chat(
        self,
        subject: SubjectRecord,
        messages: list[ChatMessage],
        policy_name: str | None = None,
        model: str = "default",
    ) -> ChatOperationResult:
        if self._upstream is None:
            raise ShieldError("generation service is not configured")

        resolved_name, mode, table = self._table(subject, policy_name)
        masked_messages = [ChatMessage(role=message.role, content=mask(message.content, table)) for message in messages]
        findings_count = self._enforce(
            resolved_name,
            mode,
            [
                ItemLeakResult(id=f"msg-{idx}", leak=validate_no_leak(message.content, table))
                for idx, message in enumerate(masked_messages)
            ],
        )

        payload = {
            "model": model,
            "messages": [{"role": message.role, "content": message.content} for message in masked_messages],
        }
        try:
            status_code, body = await self._upstream.chat_completions(payload)
        except httpx.HTTPError as exc:
            raise ShieldUpstreamError(f"generation service request failed: {exc}") from exc
        if status_code >= 400:
            raise ShieldUpstreamError(f"generation service returned {status_code}", status_code=status_code)

        if not isinstance(body, dict) or "error" in body:
            raise ShieldUpstreamError("generation service returned an error body", status_code=status_code)
        choice = first_choice(body)
        if choice is None:
            raise ShieldUpstreamError("generation service reply has no completion choice", status_code=status_code)
        masked_text, finish_reason = choice
        restored = unmask_with_count(masked_text, table)
        logger.info(
            "shield.chat policy=%s messages=%d findings=%d finish_reason=%s",
            resolved_name,
            len(messages),
            findings_count,
            finish_reason,
        )
        return ChatOperationResult(
            policy_name=resolved_name,
            findings_count=findings_count,
            masked_messages=masked_messages,
            masked_text=masked_text,
            text=restored.text,
            finish_reason=finish_reason,
        )

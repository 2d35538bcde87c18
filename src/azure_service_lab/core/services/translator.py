# -*- coding: utf-8 -*-

"""
Text translation (Translator v3).
"""

import logging
from dataclasses import dataclass

from ..transport.client import ApiClient
from ..transport.errors import DecodeError
from ..transport.models import Model, wire

TRANSLATOR_API_VERSION = "3.0"
DEFAULT_TARGET_LANGUAGE = "ko"
DEFAULT_TEXT = "Hello, world!"


@dataclass
class TranslationRequest(Model):
    text: str = wire("Text")


@dataclass
class Translation(Model):
    text: str = wire("text")
    to: str | None = wire("to", omit_empty=True, default=None)


@dataclass
class TranslationResult(Model):
    translations: list[Translation] = wire("translations", default_factory=list)


def _decode_results(payload) -> list[TranslationResult]:
    if not isinstance(payload, list):
        raise DecodeError(f"Expected a JSON array of results, got {type(payload).__name__}", body=str(payload))
    return [TranslationResult.from_wire(item) for item in payload]


def translate_text(client: ApiClient, text: str, target_language: str = DEFAULT_TARGET_LANGUAGE) -> str:
    """
    Translate one text and return the first translation.

    Args:
        client (ApiClient): Translator client (subscription key and region headers).
        text (str): Source text; the source language is detected by the service.
        target_language (str): Target language code, e.g. "ko".

    Returns:
        str: Translated text.

    Raises:
        DecodeError: The response holds no translation.
    """
    logging.debug(f"Translating {len(text)} characters to '{target_language}'")
    results = client.send(
        "POST",
        "/translate",
        [TranslationRequest(text)],
        params={"api-version": TRANSLATOR_API_VERSION, "to": target_language},
        response_type=_decode_results,
    )
    if not results or not results[0].translations:
        raise DecodeError("Translator returned no translation.")
    return results[0].translations[0].text

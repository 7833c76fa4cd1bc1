"""Prompt templates for news normalization."""

from __future__ import annotations

from thaiinfo.ingest.models import NewsCategory


LANGUAGE_NAMES = {
    "ko": "한국어",
    "en": "영어",
    "th": "태국어",
    "ja": "일본어",
    "zh": "중국어",
}

SYSTEM_INSTRUCTION = (
    "당신은 태국 거주 한국 교민을 위한 뉴스 편집자입니다. "
    "기사를 자연스러운 한국어로 번역하고 요약하며, 태국 관련 고유명사는 "
    "적절히 한국어로 표기하되 원문 표기를 괄호로 병기할 수 있습니다. "
    "반드시 JSON 객체 하나만 반환하고, 마크다운 코드 블록이나 다른 텍스트는 "
    "포함하지 마세요."
)

_CATEGORY_LIST = ", ".join(f'"{c.value}"' for c in NewsCategory)

_OUTPUT_FORMAT = f"""## 출력 형식
다음 필드를 가진 JSON 객체 하나를 반환하세요:
{{
  "title": "한국어 제목",
  "summary": "2-3문장 요약",
  "content": "한국어 본문",
  "category": 다음 중 하나: {_CATEGORY_LIST},
  "tags": ["태그1", "태그2"],
  "author": "작성자 또는 null",
  "language": "원문 언어 코드 (ko, en, th, ja, zh)"
}}
태그는 태국 관련 키워드로 5개 이내로 작성하세요."""

_SOURCE_TEMPLATE = """## 원문 정보
원문 언어: {language_name} ({language})
제목: {title}
설명: {description}

## 본문
{body}

"""

_IMAGE_TEMPLATE = """## 원문 정보
첨부된 이미지는 뉴스 기사 또는 공지문을 촬영하거나 캡처한 것입니다.
이미지의 글자를 읽어 기사 내용을 파악하세요.
{hint}
"""


def language_name(code: str) -> str:
    """Korean display name for a language code."""
    return LANGUAGE_NAMES.get(code, code)


def build_normalize_prompt(
    *,
    title: str,
    description: str,
    body: str,
    language: str,
) -> str:
    """Build the prompt for normalizing an extracted article.

    Args:
        title: Extracted page title (may be empty).
        description: Meta description (may be empty).
        body: Truncated plain-text body.
        language: Detected source language code.

    Returns:
        Prompt text.
    """
    source = _SOURCE_TEMPLATE.format(
        language_name=language_name(language),
        language=language,
        title=title or "(없음)",
        description=description or "(없음)",
        body=body,
    )
    return source + _OUTPUT_FORMAT


def build_image_prompt(hint: str = "") -> str:
    """Build the prompt for normalizing an article from an image.

    Args:
        hint: Optional operator note, e.g. the publication name.

    Returns:
        Prompt text.
    """
    hint_line = f"운영자 메모: {hint}" if hint else ""
    return _IMAGE_TEMPLATE.format(hint=hint_line) + "\n" + _OUTPUT_FORMAT


ENTRY_SYSTEM_INSTRUCTION = (
    "당신은 태국 한인 업소록을 관리하는 편집자입니다. "
    "업체 소개글, 전단지 문구, 메신저 메시지에서 업체 정보를 추출합니다. "
    "정보가 없는 필드는 null로 두고 추측하지 마세요. "
    "반드시 JSON 객체 하나만 반환하세요."
)

_ENTRY_TEMPLATE = """## 원문
{text}

## 출력 형식
다음 필드를 가진 JSON 객체 하나를 반환하세요:
{{
  "title": "업체 이름",
  "description": "한국어 상세 설명",
  "location": "위치/주소 또는 null",
  "phone": "전화번호 또는 null",
  "website": "웹사이트 URL 또는 null",
  "tags": ["키워드1", "키워드2"]
}}
태그는 업종과 지역 키워드로 5개 이내로 작성하세요."""


def build_entry_prompt(text: str) -> str:
    """Build the prompt for extracting a directory entry from free text."""
    return _ENTRY_TEMPLATE.format(text=text)

"""Prompt templates for article enhancement."""

from __future__ import annotations

REFERENCE_CHAR_LIMIT = 3000

ENHANCE_SYSTEM_PROMPT = (
    "You are an expert content editor and SEO specialist. You enhance articles to match "
    "the quality of top-ranking content while preserving original meaning."
)


def _truncate(text: str, limit: int = REFERENCE_CHAR_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_enhance_prompt(
    original_title: str,
    original_content: str,
    ref1_title: str,
    ref1_content: str,
    ref2_title: str,
    ref2_content: str,
) -> str:
    """Build the enhancement instruction for one article and two references.

    Reference bodies are capped at REFERENCE_CHAR_LIMIT characters with a
    trailing "..." when cut. The original article is embedded verbatim.
    """
    return f"""You are an expert content editor and SEO specialist. Your task is to enhance an article to match the quality and depth of top-ranking articles on Google.

## ORIGINAL ARTICLE TO ENHANCE

**Title:** {original_title}

**Content:**
{original_content}

---

## TOP-RANKING REFERENCE ARTICLES

### Reference Article 1: "{ref1_title}"
{_truncate(ref1_content)}

### Reference Article 2: "{ref2_title}"
{_truncate(ref2_content)}

---

## YOUR TASK

Analyze the reference articles and enhance the original article following these guidelines:

### 1. STRUCTURE & FORMATTING
- Use clear headings and subheadings (H2, H3) like the reference articles
- Break content into digestible sections
- Use bullet points and numbered lists where appropriate
- Add paragraph breaks for readability

### 2. CONTENT DEPTH
- Match the level of detail found in reference articles
- Add explanations, examples, or context where reference articles go deeper
- Include relevant statistics, facts, or insights if references do
- Expand on key points that are briefly mentioned

### 3. TONE & STYLE
- Maintain a professional, informative tone
- Write in a clear, engaging manner
- Use active voice where possible
- Keep sentences concise and readable

### 4. PRESERVE ORIGINAL INTENT
- **CRITICAL:** Do NOT change the core message or meaning
- Keep the original perspective and key arguments
- Maintain any unique insights from the original
- Do NOT plagiarize from reference articles

### 5. SEO OPTIMIZATION
- Use natural keyword variations
- Include relevant terms found in top-ranking articles
- Ensure content is comprehensive and authoritative

## OUTPUT REQUIREMENTS

Return ONLY the enhanced article content in markdown format.
- Start with the title as H1 (# Title)
- Use proper markdown formatting (##, ###, -, *, etc.)
- Do NOT include meta-commentary or explanations
- Do NOT add a references section (that will be added separately)

## ENHANCED ARTICLE:"""

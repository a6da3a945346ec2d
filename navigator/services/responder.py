# This project was developed with assistance from AI tools.
"""User-facing reply text for classification decisions.

FAQ answers are returned verbatim. Navigation and free-form replies come
from the ``conversational`` model tier; when it is unavailable a canned
reply is returned instead so the response never fails on generation.
"""

import logging

from ..inference.client import get_completion
from .classification import ClassificationDecision, DecisionType

logger = logging.getLogger(__name__)

FALLBACK_NAVIGATION_REPLY = "Bu yerga bosing"
FALLBACK_CHAT_REPLY = "Kechirasiz, xatolik yuz berdi. Qaytadan urinib ko'ring."

BASE_SYSTEM_PROMPT = """\
Siz "Ko'prikqurilish" aksiyadorlik jamiyatining AI yordamchisisiz.
Siz QISQA, ANIQ va DO'STONA javob berasiz.

ASOSIY QOIDALAR:
1. Agar foydalanuvchi sahifaga o'tmoqchi bo'lsa → JUDA QISQA javob (maksimum 1-2 gap)
2. Oddiy suhbat uchun → do'stona va tabiiy javob
3. HAR DOIM o'zbek tilida yozing
4. Ortiqcha tafsilot berMANG
"""

NAVIGATION_INSTRUCTIONS = """
HOZIR: Foydalanuvchini "{intent}" bo'limiga yo'naltiryapsiz.

Faqat shuni yozing (variantlardan birini tanla):
- "Marhamat, bu yerga bosing"
- "Bo'lim ochilishi uchun bu yerga bosing"
- "Iltimos, bu yerga o'ting"
- "Tayyor, bu yerni bosing"

MUHIM: Link avtomatik chiqadi, siz faqat 1 gap yozing!
"""

GENERAL_CHAT_PROMPT = """\
Siz "Ko'prikqurilish" aksiyadorlik jamiyatining yordamchi AI assistentisiz.

VAZIFANGIZ:
1. Do'stona va professional javob bering
2. Qisqa va aniq gaplashing (3-4 gap)
3. Agar kerak bo'lsa, sayt bo'limlari haqida ma'lumot bering
4. O'zbek tilida yozing

Kompaniya: Ko'prikqurilish - qurilish sohasida faoliyat yuritadi."""


def build_system_prompt(decision: ClassificationDecision) -> str:
    if decision.is_navigation:
        return BASE_SYSTEM_PROMPT + NAVIGATION_INSTRUCTIONS.format(intent=decision.intent)
    return BASE_SYSTEM_PROMPT


async def generate_chat_response(query: str, decision: ClassificationDecision) -> str:
    """Return the message shown alongside a classification decision."""
    if decision.type is DecisionType.FAQ and decision.faq is not None:
        return decision.faq.answer

    navigating = decision.is_navigation
    try:
        return await get_completion(
            [
                {"role": "system", "content": build_system_prompt(decision)},
                {"role": "user", "content": query},
            ],
            tier="conversational",
            temperature=0.3,
            max_tokens=30 if navigating else 100,
        )
    except Exception:
        logger.error("Chat response generation failed", exc_info=True)
        return FALLBACK_NAVIGATION_REPLY if navigating else FALLBACK_CHAT_REPLY


async def generate_general_chat(query: str) -> str:
    """Free-form reply with no classification context."""
    try:
        return await get_completion(
            [
                {"role": "system", "content": GENERAL_CHAT_PROMPT},
                {"role": "user", "content": query},
            ],
            tier="conversational",
            temperature=0.7,
            max_tokens=100,
        )
    except Exception:
        logger.error("General chat generation failed", exc_info=True)
        return FALLBACK_CHAT_REPLY

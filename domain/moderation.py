"""
Chat content moderation.

Order chats connect a customer or a chef with the delivery partner of the
order. Messages are screened so that parties cannot swap phone numbers,
e-mail addresses, street addresses or payment details and take the order off
the platform. The rules are plain regular expressions plus a keyword
denylist; they screen text, they are not a security boundary.

The pattern rules run before the keyword denylist, so a rejection names the
most specific rule that fired (a phone number next to "call" reports
`phone`, not `keyword`). Every repeat in the patterns is bounded or kept
apart from its neighbours so screening stays linear in the message length.
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Pattern, Tuple

from domain.enums import ChatType, UserRole

# Contact information, address, payment and platform-bypass vocabulary.
BLOCKED_KEYWORDS: Tuple[str, ...] = (
    # Contact information
    "phone", "number", "call", "mobile", "contact", "whatsapp", "telegram",
    "instagram", "facebook", "twitter", "snapchat", "linkedin", "skype", "viber",
    "signal", "discord", "zoom", "meet",
    "+91", "+1", "+44", "+86", "+81", "+49", "+33", "+39", "+7", "+55", "+52",
    "+34", "+31", "+41",
    "personal", "direct", "outside", "privately", "offline",
    # Address sharing
    "address", "location", "pickup", "home", "office", "building", "apartment",
    "flat", "house", "street", "road", "lane", "avenue", "colony", "society",
    "tower", "floor", "room", "pincode", "zipcode", "postal", "landmark", "near",
    "opposite", "behind", "front", "beside",
    # Payment bypass
    "cash", "money", "payment", "pay", "upi", "paytm", "gpay", "phonepe", "bank",
    "account", "transfer", "neft", "rtgs", "imps", "wallet", "card", "credit",
    "debit", "netbanking", "bhim", "amazon pay", "freecharge", "mobikwik",
    "paypal", "razorpay", "stripe",
    # Platform bypass
    "app", "platform", "website", "bypass", "avoid", "commission", "fee",
    "direct order", "without app", "offline order", "personal order",
    "private deal", "side business",
    # Personal information
    "email", "gmail", "yahoo", "hotmail", "outlook", "@", ".com", ".in", ".org",
    ".net", "name is", "my name", "i am", "call me", "real name", "full name",
    "surname", "lastname", "age", "birthday", "born", "family", "wife",
    "husband", "son", "daughter", "father", "mother",
    "work at", "job", "company", "business", "profession", "occupation",
)

ALLOWED_ATTACHMENT_TYPES: FrozenSet[str] = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "text/plain",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

DEFAULT_MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024

_PINCODE_RE = re.compile(r"\bpin(?:code)?[\s:]*\d{6}\b|\b\d{6}\b", re.IGNORECASE)
_PHONE_RE = re.compile(
    # Digits glued to a word or a dash (order numbers like HC-20481937) are not phones
    r"(?<![\w-])(?:\+\d{1,4}[\s-]?)?\d{7,15}"
    r"|\b[6-9]\d{9}\b"
    r"|\b\d{3}[\s-]\d{3}[\s-]\d{4}\b"
    r"|\b\d{5}[\s-]\d{5}\b"
)
_EMAIL_RE = re.compile(
    r"\b[A-Z0-9._%+-]{1,64}@[A-Z0-9.-]{1,253}\.[A-Z]{2,24}\b"
    r"|\b[A-Z0-9._%+-]{1,64}[\s\[(]{1,3}at[\s\])]{1,3}[A-Z0-9.-]{1,253}"
    r"[\s\[(]{1,3}dot[\s\])]{1,3}[A-Z]{2,24}\b",
    re.IGNORECASE,
)
_SOCIAL_RE = re.compile(
    r"(?<![\w.])@[A-Z0-9._]+|\b(?:instagram|facebook|twitter|linkedin)\.com\b",
    re.IGNORECASE,
)
# Only the separator run may hold whitespace before the first street word letter
_ADDRESS_RE = re.compile(
    r"\b\d+[\s,]+(?:[A-Z][A-Z\s]{0,60}?)?"
    r"(?:street|road|lane|avenue|colony|society|tower|building|apartment|flat|house)\b",
    re.IGNORECASE,
)
_IDENTITY_RE = re.compile(
    r"\b(?:my name is|i am|call me|real name|full name)\b", re.IGNORECASE
)
_ANY_DIGIT_RE = re.compile(r"\d")
_SUSPICIOUS_FILENAME_RE = re.compile(
    r"contact|phone|number|address|personal|private|info", re.IGNORECASE
)


def compile_keywords(keywords: Iterable[str]) -> Pattern:
    """
    Build one case-insensitive pattern for a keyword denylist.

    Terms that start and end with a letter or digit only match whole words
    ("app" does not fire on "happy"); terms with punctuation at either end
    ("@", ".com", "+91") match anywhere.
    """
    parts = []
    for keyword in sorted({k.lower() for k in keywords if k}, key=len, reverse=True):
        escaped = re.escape(keyword)
        if keyword[0].isalnum():
            escaped = r"(?<![a-z0-9])" + escaped
        if keyword[-1].isalnum():
            escaped = escaped + r"(?![a-z0-9])"
        parts.append(escaped)
    if not parts:
        return re.compile(r"(?!x)x")
    return re.compile("|".join(parts), re.IGNORECASE)


@dataclass(frozen=True)
class ModerationResult:
    allowed: bool
    rule: Optional[str] = None
    reason: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return not self.allowed

    @classmethod
    def ok(cls) -> "ModerationResult":
        return cls(allowed=True)

    @classmethod
    def reject(cls, rule: str, reason: str) -> "ModerationResult":
        return cls(allowed=False, rule=rule, reason=reason)


@dataclass(frozen=True)
class ModerationPolicy:
    """Tunable parts of the filter; the regex rules are fixed."""

    keywords: Tuple[str, ...] = BLOCKED_KEYWORDS
    block_any_digit: bool = False
    max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES
    allowed_attachment_types: FrozenSet[str] = ALLOWED_ATTACHMENT_TYPES
    keyword_pattern: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "keyword_pattern", compile_keywords(self.keywords))


DEFAULT_POLICY = ModerationPolicy()

# (rule, pattern, reason), checked in order; the first match wins.
_TEXT_RULES = (
    ("pincode", _PINCODE_RE, "Pincode sharing is not allowed"),
    ("phone", _PHONE_RE, "Phone number sharing is not allowed"),
    ("email", _EMAIL_RE, "Email sharing is not allowed"),
    ("social", _SOCIAL_RE, "Social media links are not allowed"),
    ("address", _ADDRESS_RE, "Address sharing is not allowed"),
    ("identity", _IDENTITY_RE, "Personal name sharing is not allowed"),
)


def policy_from_settings(settings) -> ModerationPolicy:
    return ModerationPolicy(
        block_any_digit=settings.chat_moderation_block_any_digit,
        max_attachment_bytes=settings.chat_max_attachment_bytes,
    )


def is_sender_allowed(sender_role, chat_type) -> bool:
    """Only the two parties named by the chat type may post in it."""
    try:
        role = UserRole(sender_role)
        chat_type = ChatType(chat_type)
    except ValueError:
        return False
    if chat_type == ChatType.CUSTOMER_DELIVERY:
        return role in (UserRole.CUSTOMER, UserRole.DELIVERY)
    if chat_type == ChatType.CHEF_DELIVERY:
        return role in (UserRole.CHEF, UserRole.DELIVERY)
    return False


def check_message(text: str, policy: ModerationPolicy = DEFAULT_POLICY) -> ModerationResult:
    """Screen a chat message; returns the first rule that fires, if any."""
    for rule, pattern, reason in _TEXT_RULES:
        if pattern.search(text):
            return ModerationResult.reject(rule, reason)

    if policy.keyword_pattern.search(text):
        return ModerationResult.reject(
            "keyword", "Personal information sharing is not allowed"
        )

    if policy.block_any_digit and _ANY_DIGIT_RE.search(text):
        return ModerationResult.reject(
            "digit", "Numbers are not allowed in order chat"
        )

    return ModerationResult.ok()


def validate_attachment(
    name: str,
    content_type: Optional[str],
    size: Optional[int] = None,
    policy: ModerationPolicy = DEFAULT_POLICY,
) -> ModerationResult:
    """Check an attachment's type, size and filename."""
    if not content_type or content_type.lower() not in policy.allowed_attachment_types:
        return ModerationResult.reject(
            "attachment_type",
            "Only images (JPG, PNG, GIF, WebP) and documents (PDF, TXT, DOC, DOCX) are allowed",
        )

    if size and size > policy.max_attachment_bytes:
        limit_mb = policy.max_attachment_bytes // (1024 * 1024)
        return ModerationResult.reject(
            "attachment_size", f"File size must be less than {limit_mb}MB"
        )

    if _SUSPICIOUS_FILENAME_RE.search(name or ""):
        return ModerationResult.reject(
            "attachment_name",
            "Filename suggests personal information sharing which is not allowed",
        )

    return ModerationResult.ok()

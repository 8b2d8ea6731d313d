"""Bot-challenge and JavaScript-shell page detection."""

import re

# Active challenge markers, not mere references to CAPTCHA services
_CLOUDFLARE_MARKERS = (
    "cf-browser-verification",
    "_cf_chl_opt",
    "checking your browser before accessing",
    "please wait while we verify your browser",
    "ray id:</strong>",
)

_CAPTCHA_WIDGET_MARKERS = (
    'src="https://hcaptcha.com',
    'src="https://www.hcaptcha.com',
    "data-sitekey=",
    'class="h-captcha"',
    'class="g-recaptcha"',
    'id="captcha-container"',
    "grecaptcha.execute",
    "hcaptcha.execute",
)

_TURNSTILE_MARKERS = (
    'class="cf-turnstile"',
    "challenges.cloudflare.com/turnstile",
)

# Pages that render nothing useful without JavaScript
_JS_REQUIRED_MARKERS = (
    "please enable javascript",
    "you need to enable javascript",
    "javascript is required",
    "javascript is disabled",
    "this site requires javascript",
    "enable javascript to run this app",
)

_SPA_ROOT_RE = re.compile(
    r'<div[^>]+id=["\'](?:root|app|__next|__nuxt)["\'][^>]*>\s*</div>',
    re.IGNORECASE,
)


def is_challenge_page(content: str, headers: dict[str, str] | None = None) -> bool:
    """Check if page is a challenge/captcha page.

    Args:
        content: Page markup.
        headers: Response headers (lower-cased keys).

    Returns:
        True if an active challenge was detected.
    """
    content_lower = content.lower()

    if any(marker in content_lower for marker in _CLOUDFLARE_MARKERS):
        return True
    if "just a moment" in content_lower and (
        "cloudflare" in content_lower or "_cf_" in content_lower
    ):
        return True
    if any(marker in content_lower for marker in _CAPTCHA_WIDGET_MARKERS):
        return True
    if any(marker in content_lower for marker in _TURNSTILE_MARKERS):
        return True

    # Tiny Cloudflare-served pages with a ray id are interstitials
    headers = headers or {}
    if "cloudflare" in headers.get("server", "").lower() and headers.get("cf-ray"):
        if len(content) < 5000 and "<body" in content_lower and content_lower.count("<div") < 10:
            return True

    return False


def detect_challenge_type(content: str) -> str:
    """Name the challenge; call only after is_challenge_page() returned True."""
    content_lower = content.lower()

    if any(marker in content_lower for marker in _TURNSTILE_MARKERS):
        return "turnstile"
    if 'src="https://hcaptcha.com' in content_lower or 'class="h-captcha"' in content_lower:
        return "hcaptcha"
    if 'class="g-recaptcha"' in content_lower or "grecaptcha.execute" in content_lower:
        return "recaptcha"
    if "data-sitekey=" in content_lower:
        return "captcha"
    if "just a moment" in content_lower and "cloudflare" in content_lower:
        return "js_challenge"
    return "cloudflare"


def requires_javascript(content: str) -> bool:
    """True when the markup is a JavaScript shell or asks for JavaScript."""
    content_lower = content.lower()
    if any(marker in content_lower for marker in _JS_REQUIRED_MARKERS):
        return True
    return bool(_SPA_ROOT_RE.search(content))

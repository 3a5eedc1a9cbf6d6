"""Rule semantics: naming tokens, marker prefixes and priority rules."""

BANNER_ROLE = "BANNER"
SIGNATURE_ROLE = "SIGNATURE"

BANNER_MARKER_PREFIX = "BANNER_MARKER_"
SIGNATURE_MARKER_PREFIX = "SIG_MARKER_"

MULTI_USER_PREFIX = "MultiUser"
DOMAIN_WIDE_SUFFIX = "DomainWide"
DOMAIN_WIDE_TRACKING_EMAIL = "domain-wide"

DEFAULT_MANAGED_NAME_PATTERNS = (
    "*EmailSignature*",
    "*Banner*",
    "*Signature*",
    "*Disclaimer*",
)

# Rule descriptions for reference in tests and audit
RULE_BANNER_PREPEND_MIN_PRIORITY = "banner: Prepend at the minimum priority of the platform range"
RULE_SIGNATURE_APPEND_MAX_PRIORITY = "signature: Append at the maximum priority of the platform range"
RULE_DOMAIN_WIDE_FIRST = "domain-wide: single Prepend rule scoped by sender domain at the minimum priority"
RULE_MARKER_SELF_EXCEPTION = "exception: every rule excludes messages carrying its own marker"
RULE_BANNER_ONLY_DROPS_BANNERLESS = "banner script: groups without banner content emit nothing"

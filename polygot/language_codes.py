"""
Supported target languages and language code utilities.

The supported set is the list of languages the translation prompt is tuned
for. Codes are ISO 639-1 (2-letter), with 'zh-TW' as the one BCP 47 variant.

Locale File Naming Convention:
The language code determines the JSON filename written to the output directory.
For example:
- Language code 'es' maps to filename 'es.json'
- Language code 'zh-TW' maps to filename 'zh-TW.json'
"""

from typing import List, Optional

SUPPORTED_LANGUAGES = {
    # European languages
    'en': 'English',
    'es': 'Spanish',
    'fr': 'French',
    'de': 'German',
    'it': 'Italian',
    'pt': 'Portuguese',
    'ru': 'Russian',
    'pl': 'Polish',
    'nl': 'Dutch',
    'sv': 'Swedish',
    'da': 'Danish',
    'no': 'Norwegian',
    'fi': 'Finnish',
    'el': 'Greek',
    'cs': 'Czech',
    'ro': 'Romanian',
    'hu': 'Hungarian',
    'tr': 'Turkish',

    # Asian languages
    'zh': 'Chinese (Simplified)',
    'zh-TW': 'Chinese (Traditional)',
    'ja': 'Japanese',
    'ko': 'Korean',
    'hi': 'Hindi',
    'th': 'Thai',
    'vi': 'Vietnamese',
    'id': 'Indonesian',

    # Middle Eastern languages
    'ar': 'Arabic',
    'he': 'Hebrew',
    'fa': 'Persian',

    # Other major languages
    'uk': 'Ukrainian',
    'bn': 'Bengali',
}


def is_language_supported(code: str) -> bool:
    """
    Check if a language code is in the supported set.

    Examples:
        >>> is_language_supported('es')
        True
        >>> is_language_supported('xx')
        False
    """
    return code in SUPPORTED_LANGUAGES


def get_language_name(code: str) -> Optional[str]:
    """
    Get the full language name from code.

    Args:
        code: Language code

    Returns:
        Language name or None if unsupported

    Examples:
        >>> get_language_name('fr')
        'French'
        >>> get_language_name('zh-TW')
        'Chinese (Traditional)'
    """
    return SUPPORTED_LANGUAGES.get(code)


def get_supported_language_codes() -> List[str]:
    """Get all supported language codes, in declaration order."""
    return list(SUPPORTED_LANGUAGES.keys())


def get_language_file_name(language_code: str) -> str:
    """
    Get the locale filename for a language.

    Examples:
        >>> get_language_file_name('es')
        'es.json'
    """
    return f"{language_code}.json"

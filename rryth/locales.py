"""User-facing string tables.

Keys are shared by `rryth.core.errors` (failure messages) and
`rryth.core.reply` (reply line labels). Params use `str.format` positional
placeholders (`{0}`, `{1}`).

Lookup rules:
    - Unknown locale falls back to `DEFAULT_LOCALE`.
    - Unknown key falls back to the default locale, then to the key itself.
"""

DEFAULT_LOCALE = "zh"

LOCALES = {

    "zh": {
        "help": "用法：rryth <关键词> [-r 宽x高] [-O] [-x 种子] [-c 相关度] [-N 强度] [-u 排除关键词]",
        "expect-prompt": "请输入关键词。",
        "invalid-input": "输入格式有误。",
        "invalid-resolution": "请输入正确的分辨率，例如 512x768。",
        "forbidden-word": "输入含有违禁词。",
        "concurrent-jobs": "当前有任务在进行中，请稍后再试。",
        "waiting": "在画了在画了",
        "pending": "在画了在画了，你前面还有 {0} 个稿……",
        "file-too-large": "文件体积过大。",
        "unsupported-file-type": "不支持的文件格式。",
        "download-error": "图片解析失败。",
        "unauthorized": "令牌未授权，请联系管理员。",
        "response-error": "发生未知错误 ({0})。",
        "request-failed": "请求失败 ({0})。",
        "request-timeout": "请求超时。",
        "unknown-error": "发生未知错误。",
        "seed": "种子 = {0}",
        "model": "模型 = {0}",
        "scale": "提示词相关度 = {0}",
        "strength": "图转图强度 = {0}",
        "prompt": "关键词 = {0}",
        "undesired": "排除关键词 = {0}",
        "workstation": "工作站名称 = {0}",
    },

    "en": {
        "help": "Usage: rryth <prompts> [-r WIDTHxHEIGHT] [-O] [-x seed] [-c scale] [-N strength] [-u undesired]",
        "expect-prompt": "Please enter a prompt.",
        "invalid-input": "Invalid command input.",
        "invalid-resolution": "Please enter a valid resolution, for example 512x768.",
        "forbidden-word": "Your input contains forbidden words.",
        "concurrent-jobs": "A job is already running here, please try again later.",
        "waiting": "Drawing, please wait...",
        "pending": "Drawing, {0} request(s) ahead of you...",
        "file-too-large": "The file is too large.",
        "unsupported-file-type": "Unsupported file type.",
        "download-error": "Failed to load the image.",
        "unauthorized": "The access token is not authorized.",
        "response-error": "Unknown error ({0}).",
        "request-failed": "Request failed ({0}).",
        "request-timeout": "Request timed out.",
        "unknown-error": "An unknown error occurred.",
        "seed": "Seed = {0}",
        "model": "Model = {0}",
        "scale": "CFG scale = {0}",
        "strength": "Strength = {0}",
        "prompt": "Prompt = {0}",
        "undesired": "Undesired = {0}",
        "workstation": "Workstation = {0}",
    },

}


def text(key: str, *params, locale: str = DEFAULT_LOCALE) -> str:
    """Render a localized string.

    Args:
        key: Table key, with or without a leading dot.
        *params: Positional values substituted into `{n}` placeholders.
        locale: Locale code; unknown codes use the default table.

    Returns:
        Rendered message, or the bare key when no table defines it.
    """
    key = key.lstrip(".")
    table = LOCALES.get(locale) or LOCALES[DEFAULT_LOCALE]
    template = table.get(key) or LOCALES[DEFAULT_LOCALE].get(key)
    if template is None:
        return key
    return template.format(*params)

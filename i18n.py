"""
i18n.py - 界面文本多语言支持

支持语言：
- en: English
- zh-cn: 简体中文
- ja: 日本語

使用方法：
    from i18n import t, set_lang, get_lang

    # 设置语言
    set_lang("zh-cn")

    # 获取翻译
    print(t("error.unknown_language", name="klingon"))
"""

import os
from typing import Optional, Dict

# 支持的语言
SUPPORTED_LANGS = ["en", "zh-cn", "ja"]
DEFAULT_LANG = "en"

# 当前语言
_current_lang: Optional[str] = None

# ==================== 翻译字典 ====================

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        # CLI 帮助
        "cli.description": """fanyi - Terminal translation tool

\b
Translate a phrase: fanyi "good morning"
Pick a language:    fanyi -t fr "good morning"
Translate a file:   fanyi file messages.json
Default language:   fanyi to
Word is a command:  fanyi t to be""",

        # 命令描述
        "cmd.t.desc": "Translate a message",
        "cmd.to.desc": "Define a default language to translate to",
        "cmd.file.desc": "Translate the texts in a .json or .txt file",
        "cmd.web.desc": "Open the Google Translate website",
        "cmd.backend.desc": "Show or set the default translation backend and the llm backend settings",

        # 选项
        "opt.to": "Translate to the language you want",
        "opt.languages": "Languages available for translation",
        "opt.backend": "Translation backend to use",
        "opt.api_base": "API base URL",
        "opt.api_key": "API Key",
        "opt.model_name": "Model name",
        "opt.temperature": "Temperature parameter",

        # 输出
        "msg.translation": "Translation: {text}",
        "msg.available_languages": "Available languages:",
        "msg.default_set": "The chosen language ({language}) has been set as default in translations.",
        "msg.file_done": "Translation completed successfully, path:",
        "msg.opening": "Opening {url}",
        "msg.backend_current": "Current backend: {name}",
        "msg.backend_set": "Default backend set to '{name}'",
        "msg.llm_current": "LLM model: {model} ({api_base})",
        "msg.llm_updated": "LLM backend settings updated",

        # 表格
        "table.languages": "Languages",
        "table.files": "Translatable files",
        "table.no": "#",
        "table.name": "Name",
        "table.code": "Code",
        "table.file": "File",

        # 交互
        "prompt.search_language": "Search language (empty for all)",
        "prompt.select_language": "Choose which default language you want to use for translations",
        "prompt.select_file": "Select file",
        "hint.no_match": "No language matches '{query}'",

        # 状态
        "status.translating": "Translating to {language}",
        "status.extracted": "Extracted {count} texts from the document",

        # 错误
        "error.general": "Error: {error}",
        "error.no_arguments": "You have not defined any valid arguments!",
        "error.message_required": "For you to translate to a specific language, first inform the message!",
        "error.unknown_language": "You provided a non-existent language '{name}', use --languages to see available languages",
        "error.unknown_backend": "Unknown translation backend '{name}'",
        "error.backend": "Translation backend failed: {error}",
        "error.empty_result": "Translation backend returned no text",
        "error.file_not_found": "File not found: {path}",
        "error.no_files": "No .json or .txt files found under {path}",
        "error.unsupported_file": "Unsupported file type '{suffix}', expected one of: {types}",
        "error.invalid_json": "Invalid JSON in {path}: {error}",
        "error.json_root": "The JSON document in {path} must be an object",
        "error.llm_not_configured": "The llm backend is not configured yet, run 'fanyi backend llm --api-key KEY' first",
        "error.invalid_encoding": "{path} is not valid UTF-8 text: {error}",
        "error.encode": "Cannot encode text at '{path}': {error}",
        "error.decode_separator": "Malformed translated token (missing '{separator}'): {token}",
        "error.decode_index": "Malformed translated token index: {index}",
        "error.decode_json": "Malformed translated token payload at index {index}: {error}",
        "error.decode_mismatch": "Translated batch has indices {got}, expected 0..{expected}",
        "error.rebuild_index": "Translated index {index} is out of range ({count} texts extracted)",
    },

    "zh-cn": {
        # CLI 帮助
        "cli.description": """fanyi - 终端翻译工具

\b
翻译短语:     fanyi "早上好"
指定语言:     fanyi -t fr "早上好"
翻译文件:     fanyi file messages.json
设置默认语言: fanyi to
以命令开头:   fanyi t to be""",

        # 命令描述
        "cmd.t.desc": "翻译一段文本",
        "cmd.to.desc": "设置默认的目标语言",
        "cmd.file.desc": "翻译 .json 或 .txt 文件中的文本",
        "cmd.web.desc": "打开 Google 翻译网站",
        "cmd.backend.desc": "查看或设置默认翻译后端以及 llm 后端配置",

        # 选项
        "opt.to": "指定目标语言",
        "opt.languages": "列出可用语言",
        "opt.backend": "使用的翻译后端",
        "opt.api_base": "API 基础 URL",
        "opt.api_key": "API Key",
        "opt.model_name": "模型名称",
        "opt.temperature": "温度参数",

        # 输出
        "msg.translation": "翻译: {text}",
        "msg.available_languages": "可用语言:",
        "msg.default_set": "已将所选语言 ({language}) 设为默认翻译语言",
        "msg.file_done": "翻译完成，输出文件:",
        "msg.opening": "正在打开 {url}",
        "msg.backend_current": "当前后端: {name}",
        "msg.backend_set": "默认后端已设置为 '{name}'",
        "msg.llm_current": "LLM 模型: {model} ({api_base})",
        "msg.llm_updated": "llm 后端配置已更新",

        # 表格
        "table.languages": "语言列表",
        "table.files": "可翻译文件",
        "table.no": "#",
        "table.name": "名称",
        "table.code": "代码",
        "table.file": "文件",

        # 交互
        "prompt.search_language": "搜索语言（留空显示全部）",
        "prompt.select_language": "选择默认翻译语言",
        "prompt.select_file": "选择文件",
        "hint.no_match": "没有匹配 '{query}' 的语言",

        # 状态
        "status.translating": "正在翻译为 {language}",
        "status.extracted": "已从文档中提取 {count} 条文本",

        # 错误
        "error.general": "错误: {error}",
        "error.no_arguments": "没有提供任何有效参数！",
        "error.message_required": "指定目标语言时，请先提供要翻译的文本！",
        "error.unknown_language": "语言 '{name}' 不存在，使用 --languages 查看可用语言",
        "error.unknown_backend": "未知的翻译后端 '{name}'",
        "error.backend": "翻译后端调用失败: {error}",
        "error.empty_result": "翻译后端没有返回任何文本",
        "error.file_not_found": "文件不存在: {path}",
        "error.no_files": "{path} 下没有找到 .json 或 .txt 文件",
        "error.unsupported_file": "不支持的文件类型 '{suffix}'，仅支持: {types}",
        "error.invalid_json": "{path} 不是有效的 JSON: {error}",
        "error.json_root": "{path} 的 JSON 顶层必须是对象",
        "error.llm_not_configured": "llm 后端尚未配置，请先运行 'fanyi backend llm --api-key KEY'",
        "error.invalid_encoding": "{path} 不是有效的 UTF-8 文本: {error}",
        "error.encode": "无法编码 '{path}' 处的文本: {error}",
        "error.decode_separator": "译文片段格式错误（缺少 '{separator}'）: {token}",
        "error.decode_index": "译文片段序号格式错误: {index}",
        "error.decode_json": "序号 {index} 的译文不是有效的 JSON: {error}",
        "error.decode_mismatch": "译文序号为 {got}，应为 0..{expected}",
        "error.rebuild_index": "译文序号 {index} 超出范围（共提取 {count} 条文本）",
    },

    "ja": {
        # CLI ヘルプ
        "cli.description": """fanyi - ターミナル翻訳ツール

\b
フレーズを翻訳:       fanyi "おはよう"
言語を指定:           fanyi -t fr "おはよう"
ファイルを翻訳:       fanyi file messages.json
デフォルト言語を設定: fanyi to
コマンド名で始まる: fanyi t to be""",

        # コマンド説明
        "cmd.t.desc": "テキストを翻訳",
        "cmd.to.desc": "デフォルトの翻訳先言語を設定",
        "cmd.file.desc": ".json または .txt ファイルのテキストを翻訳",
        "cmd.web.desc": "Google 翻訳のウェブサイトを開く",
        "cmd.backend.desc": "デフォルトの翻訳バックエンドと llm バックエンドの設定を表示・変更",

        # オプション
        "opt.to": "翻訳先の言語",
        "opt.languages": "利用可能な言語を表示",
        "opt.backend": "使用する翻訳バックエンド",
        "opt.api_base": "API ベース URL",
        "opt.api_key": "API キー",
        "opt.model_name": "モデル名",
        "opt.temperature": "温度パラメータ",

        # 出力
        "msg.translation": "翻訳: {text}",
        "msg.available_languages": "利用可能な言語:",
        "msg.default_set": "選択した言語 ({language}) をデフォルトの翻訳先に設定しました",
        "msg.file_done": "翻訳が完了しました。出力ファイル:",
        "msg.opening": "{url} を開いています",
        "msg.backend_current": "現在のバックエンド: {name}",
        "msg.backend_set": "デフォルトバックエンドを '{name}' に設定しました",
        "msg.llm_current": "LLM モデル: {model} ({api_base})",
        "msg.llm_updated": "llm バックエンドの設定を更新しました",

        # テーブル
        "table.languages": "言語一覧",
        "table.files": "翻訳可能なファイル",
        "table.no": "#",
        "table.name": "名前",
        "table.code": "コード",
        "table.file": "ファイル",

        # 対話
        "prompt.search_language": "言語を検索（空欄ですべて表示）",
        "prompt.select_language": "デフォルトの翻訳先言語を選択",
        "prompt.select_file": "ファイルを選択",
        "hint.no_match": "'{query}' に一致する言語がありません",

        # ステータス
        "status.translating": "{language} に翻訳中",
        "status.extracted": "ドキュメントから {count} 件のテキストを抽出しました",

        # エラー
        "error.general": "エラー: {error}",
        "error.no_arguments": "有効な引数が指定されていません！",
        "error.message_required": "翻訳先を指定する場合は、先にテキストを入力してください！",
        "error.unknown_language": "言語 '{name}' は存在しません。--languages で利用可能な言語を確認してください",
        "error.unknown_backend": "不明な翻訳バックエンド '{name}'",
        "error.backend": "翻訳バックエンドの呼び出しに失敗しました: {error}",
        "error.empty_result": "翻訳バックエンドがテキストを返しませんでした",
        "error.file_not_found": "ファイルが見つかりません: {path}",
        "error.no_files": "{path} 以下に .json または .txt ファイルがありません",
        "error.unsupported_file": "サポートされていないファイル形式 '{suffix}'（対応: {types}）",
        "error.invalid_json": "{path} は有効な JSON ではありません: {error}",
        "error.json_root": "{path} の JSON のトップレベルはオブジェクトである必要があります",
        "error.llm_not_configured": "llm バックエンドが設定されていません。先に 'fanyi backend llm --api-key KEY' を実行してください",
        "error.invalid_encoding": "{path} は有効な UTF-8 テキストではありません: {error}",
        "error.encode": "'{path}' のテキストをエンコードできません: {error}",
        "error.decode_separator": "翻訳結果の形式が不正です（'{separator}' がありません）: {token}",
        "error.decode_index": "翻訳結果の番号が不正です: {index}",
        "error.decode_json": "番号 {index} の翻訳結果が有効な JSON ではありません: {error}",
        "error.decode_mismatch": "翻訳結果の番号が {got} です。0..{expected} が必要です",
        "error.rebuild_index": "翻訳結果の番号 {index} が範囲外です（抽出数 {count}）",
    },
}


# ==================== 语言检测与管理 ====================

def detect_lang_from_env() -> str:
    """从环境变量检测界面语言

    检测顺序: LANGUAGE -> LC_ALL -> LC_MESSAGES -> LANG
    """
    for var in ["LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG"]:
        value = os.environ.get(var, "").lower()
        if not value:
            continue

        # zh_CN.UTF-8 -> zh_cn
        lang_code = value.split(".")[0].replace("-", "_")

        if lang_code.startswith("zh"):
            return "zh-cn"
        elif lang_code.startswith("ja"):
            return "ja"
        elif lang_code.startswith("en"):
            return "en"

    return DEFAULT_LANG


def get_lang() -> str:
    """获取当前界面语言"""
    global _current_lang
    if _current_lang is None:
        _current_lang = detect_lang_from_env()
    return _current_lang


def set_lang(lang: str) -> None:
    """设置当前界面语言，不支持的语言回退到英文"""
    global _current_lang
    if lang in SUPPORTED_LANGS:
        _current_lang = lang
    else:
        _current_lang = DEFAULT_LANG


def t(key: str, **kwargs) -> str:
    """获取界面文本

    Args:
        key: 文本键 (如 "error.file_not_found")
        **kwargs: 格式化参数

    Returns:
        当前语言的文本，缺失时回退到英文，再缺失时返回键本身
    """
    lang = get_lang()
    translations = TRANSLATIONS.get(lang, TRANSLATIONS[DEFAULT_LANG])

    text = translations.get(key)
    if text is None:
        text = TRANSLATIONS[DEFAULT_LANG].get(key, key)

    if kwargs:
        try:
            text = text.format(**kwargs)
        except KeyError:
            pass

    return text

#!/usr/bin/env python3
"""
fanyi.py - 终端翻译工具
支持短语翻译以及 JSON / TXT 文件的整体翻译
支持 Google 翻译与 OpenAI 兼容的 LLM 两种翻译后端
默认目标语言保存在本地配置中
"""

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import click
import yaml
from deep_translator import GoogleTranslator
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# LangChain imports
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from i18n import t

__version__ = "0.1.0"

# 配置文件路径
CONFIG_DIR = Path(os.environ.get("FANYI_CONFIG_DIR") or Path.home() / ".config" / "fanyi")
CONFIG_FILE = CONFIG_DIR / "config.yaml"

WEBSITE_URL = "https://translate.google.com/"
FALLBACK_LANGUAGE = "en"
DEFAULT_BACKEND = "google"
DEFAULT_LLM_MODEL = "gpt-4o-mini"
BACKENDS = ["google", "llm"]

# 文件选择
FILE_TYPES = [".json", ".txt"]
EXCLUDED_DIRS = ["node_modules"]
PICKER_DEPTH_LIMIT = 5
TRANSLATED_SUFFIX = "-translated"

# 批量编码分隔符
BATCH_SEPARATOR = "//"
RECORD_SEPARATOR = "=="
PATH_SEPARATOR = "/"

console = Console()

TRANSLATE_PROMPT = """你是一个翻译引擎。请把用户发送的文本翻译成语言代码为 "{target}" 的语言。
只输出译文，不要添加任何解释。

如果文本由 0=="..."//1=="..." 这样的片段组成：
1. 保持每个序号、== 和 // 分隔符原样不变
2. 保持 JSON 引号、方括号和转义字符原样不变
3. 只翻译 JSON 字符串内部的文字"""


# ==================== 异常 ====================

class FanyiError(Exception):
    """翻译流程中所有可预期错误的基类"""


class ArgumentError(FanyiError):
    """命令行输入无效（缺少文本、语言不存在、文件类型不支持等）"""


class BackendError(FanyiError):
    """翻译后端调用失败，原始异常保存在 __cause__ 中"""


class EncodingError(FanyiError):
    pass


class DecodingError(FanyiError):
    pass


class RebuildError(FanyiError):
    pass


# ==================== 配置管理 ====================

def load_config() -> dict:
    """加载配置文件"""
    if not CONFIG_FILE.exists():
        return {
            "default_language": None,
            "backend": None,
            "languages": {},
            "llm": {},
        }

    with open(CONFIG_FILE, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    return {
        "default_language": config.get("default_language"),
        "backend": config.get("backend"),
        "languages": config.get("languages") or {},
        "llm": config.get("llm") or {},
    }


def save_config(config: dict) -> None:
    """保存配置文件"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        yaml.dump(config, f, allow_unicode=True, default_flow_style=False)


def default_language_catalog() -> dict:
    """根据 Google 翻译支持的语言生成默认语言目录

    返回两个按下标对齐的列表:
    {"long_name": ["Afrikaans", ...], "short_name": ["af", ...]}
    """
    languages = GoogleTranslator().get_supported_languages(as_dict=True)
    return {
        "long_name": [name.title() for name in languages],
        "short_name": list(languages.values()),
    }


@dataclass
class Language:
    long_name: str
    short_name: str


class ConfigStore:
    """默认语言与语言目录的存储接口

    翻译流程只通过这个对象读取配置，测试时可以替换成任意实现了
    get_default_language / set_default_language / list_languages 的对象。
    """

    def get_default_language(self) -> Optional[str]:
        return load_config().get("default_language")

    def set_default_language(self, code: str) -> None:
        cfg = load_config()
        cfg["default_language"] = code
        save_config(cfg)

    def list_languages(self) -> List[Language]:
        """返回语言目录，首次使用时写入默认目录"""
        cfg = load_config()
        catalog = cfg["languages"]
        if not catalog.get("long_name"):
            catalog = default_language_catalog()
            cfg["languages"] = catalog
            save_config(cfg)

        return [
            Language(long_name, short_name)
            for long_name, short_name in zip(catalog["long_name"], catalog["short_name"])
        ]

    def find_language(self, value: str) -> Optional[Language]:
        """按长名称或短代码查找语言（不区分大小写）"""
        needle = value.strip().lower()
        for language in self.list_languages():
            if needle in (language.long_name.lower(), language.short_name.lower()):
                return language
        return None


# ==================== 文档节点 ====================

@dataclass
class Leaf:
    text: str


@dataclass
class LeafList:
    items: List[str]


@dataclass
class Branch:
    children: Dict[str, Any]


class Empty:
    """空字符串、空数组、空对象以及数字/布尔/null 等不翻译的值"""

    def __repr__(self):
        return "Empty"


EMPTY = Empty()

Node = Union[Leaf, LeafList, Branch, Empty]


def to_node(value: Any) -> Node:
    """把解析后的 JSON 值归类为 Leaf / LeafList / Branch / Empty 之一"""
    if isinstance(value, str):
        return Leaf(value) if value else EMPTY
    if isinstance(value, list):
        if value and all(isinstance(item, str) for item in value):
            return LeafList(value)
        return EMPTY
    if isinstance(value, dict):
        if value:
            return Branch({key: to_node(child) for key, child in value.items()})
        return EMPTY
    return EMPTY


# ==================== 提取 / 编码 / 解码 / 重建 ====================

@dataclass
class LeafRecord:
    path: Tuple[str, ...]
    text: Union[str, List[str]]

    @property
    def path_str(self) -> str:
        return PATH_SEPARATOR.join(self.path)


def extract(doc: dict) -> List[LeafRecord]:
    """按键的插入顺序先序遍历文档，收集所有可翻译的叶子

    重建时依赖记录的下标与译文序号对齐，所以顺序必须稳定。
    """
    records: List[LeafRecord] = []

    def visit(node: Node, path: Tuple[str, ...]) -> None:
        if isinstance(node, Branch):
            for key, child in node.children.items():
                visit(child, path + (key,))
        elif isinstance(node, Leaf):
            records.append(LeafRecord(path, node.text))
        elif isinstance(node, LeafList):
            records.append(LeafRecord(path, list(node.items)))
        elif node is not EMPTY:
            raise TypeError(f"unknown document node: {node!r}")

    root = to_node(doc)
    if isinstance(root, Branch):
        visit(root, ())
    return records


def _is_text(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def encode(records: List[LeafRecord]) -> str:
    """把所有叶子编码成一条文本: 0=="..."//1==["...", "..."]

    JSON 中的 "/" 写成 "\\/"，保证片段内不会出现 "//"。
    """
    tokens = []
    for index, record in enumerate(records):
        if not _is_text(record.text):
            raise EncodingError(t("error.encode", path=record.path_str, error=type(record.text).__name__))
        try:
            payload = json.dumps(record.text, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise EncodingError(t("error.encode", path=record.path_str, error=e)) from e
        payload = payload.replace("/", "\\/")
        tokens.append(f"{index}{RECORD_SEPARATOR}{payload}")
    return BATCH_SEPARATOR.join(tokens)


def decode(batch_text: str) -> List[Tuple[int, Any]]:
    """解析译文，返回 [(序号, 值), ...]

    任意一个片段格式错误都会中止整批解析，不返回部分结果。
    """
    entries = []
    for token in batch_text.split(BATCH_SEPARATOR):
        index_text, separator, payload = token.partition(RECORD_SEPARATOR)
        if not separator:
            raise DecodingError(t("error.decode_separator", separator=RECORD_SEPARATOR, token=token.strip()))

        try:
            index = int(index_text.strip(), 10)
        except ValueError as e:
            raise DecodingError(t("error.decode_index", index=index_text.strip())) from e

        try:
            value = json.loads(payload.strip())
        except json.JSONDecodeError as e:
            raise DecodingError(t("error.decode_json", index=index, error=e)) from e

        entries.append((index, value))
    return entries


def set_path(document: dict, path: Tuple[str, ...], value: Any) -> None:
    """在 document 中按 path 写入 value，缺失的中间层级自动创建"""
    node = document
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child
    node[path[-1]] = value


def rebuild(records: List[LeafRecord], decoded: List[Tuple[int, Any]]) -> dict:
    """按原始叶子路径把译文写回一个新文档"""
    document: dict = {}
    for index, value in decoded:
        if not 0 <= index < len(records):
            raise RebuildError(t("error.rebuild_index", index=index, count=len(records)))
        set_path(document, records[index].path, value)
    return document


def check_alignment(records: List[LeafRecord], decoded: List[Tuple[int, Any]]) -> None:
    """译文条数必须与叶子数相同且序号不重复

    序号越界由 rebuild 负责检查。
    """
    indices = [index for index, _ in decoded]
    if len(indices) != len(records) or len(set(indices)) != len(indices):
        raise DecodingError(t("error.decode_mismatch", got=indices, expected=len(records) - 1))


# ==================== 翻译后端 ====================

Backend = Callable[[str, str], str]


def google_backend(text: str, target: str) -> str:
    """通过 deep-translator 调用 Google 翻译"""
    result = GoogleTranslator(source="auto", target=target).translate(text)
    if result is None:
        raise BackendError(t("error.empty_result"))
    return result


def get_model() -> ChatOpenAI:
    """根据配置中的 llm 段创建聊天模型"""
    llm_config = load_config()["llm"]

    if not llm_config:
        raise ArgumentError(t("error.llm_not_configured"))

    return ChatOpenAI(
        model=llm_config.get("model", DEFAULT_LLM_MODEL),
        openai_api_key=llm_config.get("api_key"),
        openai_api_base=llm_config.get("api_base"),
        temperature=llm_config.get("temperature", 0),
    )


def make_llm_backend() -> Backend:
    """用 OpenAI 兼容的聊天模型作为翻译后端"""
    llm = get_model()

    def translate(text: str, target: str) -> str:
        response = llm.invoke([
            SystemMessage(content=TRANSLATE_PROMPT.format(target=target)),
            HumanMessage(content=text),
        ])
        return response.content.strip()

    return translate


def get_backend(name: Optional[str] = None) -> Backend:
    """按名称获取翻译后端

    优先级: 命令行指定 > 配置文件 > google
    """
    name = name or load_config().get("backend") or DEFAULT_BACKEND
    if name == "google":
        return google_backend
    if name == "llm":
        return make_llm_backend()
    raise ArgumentError(t("error.unknown_backend", name=name))


# ==================== 翻译流程 ====================

IDLE = "idle"
EXTRACTING = "extracting"
ENCODING = "encoding"
AWAITING_BACKEND = "awaiting_backend"
DECODING = "decoding"
REBUILDING = "rebuilding"
DONE = "done"
FAILED = "failed"


def translated_path(path: Path) -> Path:
    """messages.json -> messages-translated.json（与原文件同目录）"""
    return path.with_name(f"{path.stem}{TRANSLATED_SUFFIX}{path.suffix}")


def keep_surrounding_whitespace(source: str, translated: str) -> str:
    """后端会去掉首尾空白（包括文件末尾的换行），按原文补回"""
    body = source.strip()
    if not body:
        return source
    start = source.index(body)
    return source[:start] + translated.strip() + source[start + len(body):]


class Translator:
    """协调 提取 -> 编码 -> 后端 -> 解码 -> 重建 的翻译流程

    每次调用都从 idle 开始，成功后停在 done，任何一步出错停在 failed。
    """

    def __init__(self, store, backend: Backend):
        self.store = store
        self.backend = backend
        self.state = IDLE

    def resolve_language(self, explicit: Optional[str] = None) -> str:
        """目标语言优先级: 命令行指定 > 默认语言 > en"""
        return explicit or self.store.get_default_language() or FALLBACK_LANGUAGE

    def _call_backend(self, text: str, target: str) -> str:
        self.state = AWAITING_BACKEND
        with console.status(f"[bold green]{t('status.translating', language=target)}...[/bold green]"):
            try:
                return self.backend(text, target)
            except FanyiError:
                raise
            except Exception as e:
                raise BackendError(t("error.backend", error=e)) from e

    def translate_text(self, text: str, to: Optional[str] = None) -> str:
        """整段文本作为一条消息翻译"""
        target = self.resolve_language(to)
        self.state = IDLE
        try:
            result = keep_surrounding_whitespace(text, self._call_backend(text, target))
        except Exception:
            self.state = FAILED
            raise
        self.state = DONE
        return result

    def translate_document(self, document: dict, to: Optional[str] = None) -> dict:
        """把文档中的所有叶子合并成一次请求翻译，再按原结构重建"""
        target = self.resolve_language(to)
        self.state = IDLE
        try:
            self.state = EXTRACTING
            records = extract(document)
            console.print(f"[dim]{t('status.extracted', count=len(records))}[/dim]")
            if not records:
                self.state = DONE
                return {}

            self.state = ENCODING
            batch = encode(records)

            translated = self._call_backend(batch, target)

            self.state = DECODING
            decoded = decode(translated)

            self.state = REBUILDING
            result = rebuild(records, decoded)
            check_alignment(records, decoded)
        except Exception:
            self.state = FAILED
            raise

        self.state = DONE
        return result

    def translate_file(self, path: Union[str, Path], to: Optional[str] = None) -> Path:
        """翻译 .json / .txt 文件，返回输出文件路径

        整个流程成功后才写入输出文件。
        """
        path = Path(path)
        try:
            if not path.is_file():
                raise FileNotFoundError(t("error.file_not_found", path=path))

            suffix = path.suffix.lower()
            if suffix not in FILE_TYPES:
                raise ArgumentError(t("error.unsupported_file", suffix=suffix, types=", ".join(FILE_TYPES)))

            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                raise ArgumentError(t("error.invalid_encoding", path=path, error=e)) from e

            if suffix == ".json":
                try:
                    document = json.loads(content)
                except json.JSONDecodeError as e:
                    raise ArgumentError(t("error.invalid_json", path=path, error=e)) from e
                if not isinstance(document, dict):
                    raise ArgumentError(t("error.json_root", path=path))
                output = json.dumps(self.translate_document(document, to), indent=4, ensure_ascii=False)
            else:
                # 纯文本没有结构，整个文件就是一条消息
                output = self.translate_text(content, to)

            output_path = translated_path(path)
            output_path.write_text(output, encoding="utf-8")
        except Exception:
            self.state = FAILED
            raise

        return output_path


# ==================== 交互选择 ====================

def is_excluded(name: str) -> bool:
    return name.startswith(".") or name in EXCLUDED_DIRS


def find_translatable_files(root: Path, depth_limit: int = PICKER_DEPTH_LIMIT) -> List[Path]:
    """列出 root 下可翻译的文件（相对路径）

    跳过隐藏文件、隐藏目录和 node_modules，最多向下 depth_limit 层目录。
    """
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        relative = Path(dirpath).relative_to(root)
        if len(relative.parts) < depth_limit:
            dirnames[:] = sorted(d for d in dirnames if not is_excluded(d))
        else:
            dirnames[:] = []

        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if Path(name).suffix.lower() in FILE_TYPES:
                files.append(relative / name)
    return files


def pick_file(root: Path) -> Path:
    """列出可翻译文件并让用户按编号选择"""
    files = find_translatable_files(root)
    if not files:
        raise FileNotFoundError(t("error.no_files", path=root))

    table = Table(title=t("table.files"))
    table.add_column(t("table.no"), justify="right")
    table.add_column(t("table.file"), style="cyan")
    for i, file in enumerate(files, 1):
        table.add_row(str(i), escape(str(file)))
    console.print(table)

    choice = click.prompt(t("prompt.select_file"), type=click.IntRange(1, len(files)))
    return root / files[choice - 1]


def pick_language(languages: List[Language]) -> Language:
    """先按关键字过滤语言目录，再让用户按编号选择"""
    while True:
        query = click.prompt(t("prompt.search_language"), default="", show_default=False).strip().lower()
        matches = [
            language for language in languages
            if query in language.long_name.lower() or query in language.short_name.lower()
        ]
        if matches:
            break
        console.print(f"[yellow]{t('hint.no_match', query=escape(query))}[/yellow]")

    table = Table(title=t("table.languages"))
    table.add_column(t("table.no"), justify="right")
    table.add_column(t("table.name"), style="cyan")
    table.add_column(t("table.code"), style="green")
    for i, language in enumerate(matches, 1):
        table.add_row(str(i), escape(language.long_name), language.short_name)
    console.print(table)

    choice = click.prompt(t("prompt.select_language"), type=click.IntRange(1, len(matches)))
    return matches[choice - 1]


def print_languages(languages: List[Language]) -> None:
    console.print(f"[bold white]{t('msg.available_languages')}[/bold white]")
    for language in languages:
        console.print(f"[bold bright_black]  {escape(language.long_name)} ({language.short_name})[/bold bright_black]")


def fail(error: Exception) -> None:
    console.print(f"[red]{escape(t('error.general', error=error))}[/red]")
    sys.exit(1)


# ==================== CLI 命令 ====================

SUBCOMMANDS = ["t", "to", "file", "web", "backend"]
CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class FanyiCLI(click.Group):
    """自定义 CLI 组，未指定子命令时直接翻译"""

    def make_context(self, info_name, args, parent=None, **extra):
        """在创建上下文前预处理参数，必要时插入 't' 命令"""
        args = list(args)
        if args and args[0] in ["--help", "-h", "--version"]:
            return super().make_context(info_name, args, parent, **extra)

        first_non_option = None
        for arg in args:
            if not arg.startswith("-"):
                first_non_option = arg
                break

        # 没有参数也交给 't'，由它报告缺少文本
        if first_non_option is None or first_non_option not in SUBCOMMANDS:
            args = ["t"] + args

        return super().make_context(info_name, args, parent, **extra)


def verify_language(ctx, param, value):
    """--to 必须是语言目录中的长名称或短代码，返回短代码"""
    if value is None:
        return None
    language = ConfigStore().find_language(value)
    if language is None:
        raise click.BadParameter(t("error.unknown_language", name=value))
    return language.short_name


@click.group(cls=FanyiCLI, context_settings=CONTEXT_SETTINGS, help=t("cli.description"))
@click.version_option(__version__, prog_name="fanyi")
def cli():
    pass


@cli.command("t", hidden=True, help=t("cmd.t.desc"))
@click.argument("message", nargs=-1)
@click.option("-t", "--to", callback=verify_language, help=t("opt.to"))
@click.option("-l", "--languages", "show_languages", is_flag=True, help=t("opt.languages"))
@click.option("-b", "--backend", type=click.Choice(BACKENDS), help=t("opt.backend"))
def translate_cmd(message, to, show_languages, backend):
    store = ConfigStore()

    if show_languages:
        print_languages(store.list_languages())
        return

    if not message:
        if to:
            raise click.UsageError(t("error.message_required"))
        raise click.UsageError(t("error.no_arguments"))

    try:
        translator = Translator(store, get_backend(backend))
        text = translator.translate_text(" ".join(message), to)
    except FanyiError as e:
        fail(e)

    console.print(f"[green]>[/green] [bold white]{escape(t('msg.translation', text=text))}[/bold white]")


@cli.command("to", help=t("cmd.to.desc"))
def to_cmd():
    store = ConfigStore()
    chosen = pick_language(store.list_languages())

    store.set_default_language(chosen.short_name)
    label = f"{chosen.long_name} ({chosen.short_name})"
    console.print(f"[green]✓ {escape(t('msg.default_set', language=label))}[/green]")


@cli.command("file", help=t("cmd.file.desc"))
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("-t", "--to", callback=verify_language, help=t("opt.to"))
@click.option("-b", "--backend", type=click.Choice(BACKENDS), help=t("opt.backend"))
def file_cmd(path, to, backend):
    try:
        if path is None:
            path = pick_file(Path.cwd())
        translator = Translator(ConfigStore(), get_backend(backend))
        output_path = translator.translate_file(path, to)
    except (FanyiError, OSError) as e:
        fail(e)

    console.print(
        f"[green]✓[/green] [bold white]{t('msg.file_done')}[/bold white] "
        f"[bold bright_black]{escape(str(output_path))}[/bold bright_black]"
    )


@cli.command("web", help=t("cmd.web.desc"))
def web_cmd():
    console.print(f"[dim]{t('msg.opening', url=WEBSITE_URL)}[/dim]")
    click.launch(WEBSITE_URL)


@cli.command("backend", help=t("cmd.backend.desc"))
@click.argument("name", required=False, type=click.Choice(BACKENDS))
@click.option("--api-base", "-b", help=t("opt.api_base"))
@click.option("--api-key", "-k", help=t("opt.api_key"))
@click.option("--model", "-m", help=t("opt.model_name"))
@click.option("--temperature", type=float, help=t("opt.temperature"))
def backend_cmd(name, api_base, api_key, model, temperature):
    cfg = load_config()
    llm_updates = {
        key: value
        for key, value in [("api_base", api_base), ("api_key", api_key), ("model", model), ("temperature", temperature)]
        if value is not None
    }

    if name is None and not llm_updates:
        console.print(t("msg.backend_current", name=cfg.get("backend") or DEFAULT_BACKEND))
        if cfg["llm"]:
            console.print(f"[dim]{t('msg.llm_current', model=cfg['llm'].get('model', DEFAULT_LLM_MODEL), api_base=cfg['llm'].get('api_base') or '-')}[/dim]")
        return

    if llm_updates:
        cfg["llm"].update(llm_updates)
    if name:
        cfg["backend"] = name
    save_config(cfg)

    if name:
        console.print(f"[green]✓ {t('msg.backend_set', name=name)}[/green]")
    if llm_updates:
        console.print(f"[green]✓ {t('msg.llm_updated')}[/green]")


if __name__ == "__main__":
    cli()

"""Line-oriented extraction of functions, classes, imports and decision points.

No grammar is involved: each dialect has an ordered table of declaration
patterns, and block boundaries are found by brace depth (``brace`` and
``generic`` dialects) or by indentation (``indent`` dialect). Unusual
formatting yields fewer or less accurate records, never an exception. The
same text always yields the same records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Set, Tuple, Union

from .model import (
	CallSite,
	ClassRecord,
	DecisionPoint,
	ExtractionResult,
	FunctionRecord,
	ImportReference,
)


RESERVED_WORDS = frozenset(
	{
		# control flow
		"if", "else", "elif", "for", "foreach", "while", "do", "switch", "case",
		"break", "continue", "return", "try", "catch", "except", "finally",
		"throw", "throws", "raise", "goto", "defer", "go", "match", "loop",
		"when", "select", "yield", "await", "with", "assert", "pass",
		"synchronized", "fixed", "checked", "unchecked",
		# declarations and operators
		"new", "delete", "this", "self", "super", "var", "let", "const", "val",
		"function", "func", "fn", "fun", "def", "lambda", "class", "struct",
		"interface", "enum", "extends", "implements", "import", "export",
		"from", "default", "async", "not", "and", "or", "in", "is", "of",
		"typeof", "instanceof", "void", "sizeof", "using", "namespace",
		"package", "static", "public", "private", "protected",
		# literals and common globals
		"true", "false", "null", "undefined", "None", "True", "False", "nil",
		"console", "log", "document", "window", "require", "module", "print",
		"println", "printf",
	}
)

_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`(?:\\.|[^`\\])*`')
_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\(")
_OPERATOR_RE = re.compile(
	r"&&|\|\||\band\b|\bor\b|\bnot\b|===|!==|==|!=|<=|>=|(?<![<=>\-])[<>](?![<=>])"
)
_CONTINUATION_SUFFIXES = (",", "(", "[", "=>", "=", "+", "-", "*", "/", "&", "|", "?", ":", ".", "->")

_DECISION_RULES: List[Tuple[str, Pattern[str]]] = [
	("conditional", re.compile(r"\b(?:if|elif|unless)\b")),
	("switch", re.compile(r"\b(?:switch|case)\b|^match\s+[^=(.]")),
	("loop", re.compile(r"\b(?:for|foreach|while)\b|^loop\s*\{")),
	("ternary", re.compile(r"\s\?\s")),
	("logical", re.compile(r"&&|\|\||\band\b|\bor\b")),
]

SNIPPET_LIMIT = 80


@dataclass(frozen=True)
class _DeclPattern:
	regex: Pattern[str]
	kind: str = "function"
	exported: bool = False


_BRACE_CLASS = re.compile(r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(?P<name>\w+)")
_BRACE_FUNCTIONS = [
	_DeclPattern(re.compile(r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<name>\w+)\s*\(")),
	_DeclPattern(
		re.compile(
			r"^(?:(?:public|private|protected|static|readonly|override|abstract|async|get|set)\s+)*\*?\s*"
			r"(?P<name>\w+)\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?::\s*[^={]+)?\{"
		),
		kind="method",
	),
	_DeclPattern(re.compile(r"^(?P<name>\w+)\s*:\s*(?:async\s+)?function\b"), kind="method"),
	_DeclPattern(
		re.compile(
			r"^(?:export\s+)?(?:(?:const|let|var)\s+)?(?:(?:public|private|protected|static|readonly)\s+)*"
			r"(?P<name>\w+)\s*(?::\s*[^=]+)?=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*(?::\s*[^=]+)?=>"
		),
		kind="arrow",
	),
	_DeclPattern(
		re.compile(
			r"^(?:module\.)?exports\.(?P<name>\w+)\s*=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|\w+\s*=>)"
		),
		exported=True,
	),
]
_BRACE_EXPORT_LIST = re.compile(r"^(?:module\.exports\s*=|export)\s*\{([^}]*)\}")
_BRACE_IMPORTS = [
	re.compile(r"^import\b.*?\bfrom\s+['\"]([^'\"]+)['\"]"),
	re.compile(r"^import\s+['\"]([^'\"]+)['\"]"),
	re.compile(r"\brequire\(\s*['\"]([^'\"]+)['\"]\s*\)"),
]

_INDENT_CLASS = re.compile(r"^class\s+(?P<name>\w+)")
_INDENT_FUNCTIONS = [
	_DeclPattern(re.compile(r"^(?:async\s+)?def\s+(?P<name>\w+)\s*\(")),
]
_INDENT_IMPORT = re.compile(r"^import\s+([\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)")
_INDENT_FROM = re.compile(r"^from\s+([\w.]+)\s+import\b")
_INDENT_ALL = re.compile(r"^__all__\s*(?::[^=]*)?[+]?=")
_QUOTED_NAME = re.compile(r"['\"](\w+)['\"]")

_GENERIC_CLASSES = [
	re.compile(
		r"^(?:(?:public|private|protected|internal|static|final|abstract|sealed|partial|open|data|pub(?:\([^)]*\))?)\s+)*"
		r"(?:class|struct|interface|enum|trait|impl|object)\s+(?:<[^>]*>\s*)?(?P<name>\w+)"
	),
	re.compile(r"^type\s+(?P<name>\w+)\s+(?:struct|interface)\b"),
]
_GENERIC_STATEMENT_START = (
	r"(?!(?:if|else|for|while|switch|case|return|new|throw|delete|await|yield|defer|go|"
	r"package|import|using|do|try|catch|goto|sizeof|lock|synchronized|fixed|checked|unchecked)\b)"
)
_GENERIC_FUNCTIONS = [
	_DeclPattern(re.compile(r"^func\s+(?P<recv>\([^)]*\)\s*)?(?P<name>\w+)\s*(?:\[[^\]]*\])?\s*\(")),
	_DeclPattern(
		re.compile(
			r"^(?:pub(?:\([^)]*\))?\s+)?(?:(?:async|const|unsafe|extern(?:\s+\"[^\"]*\")?)\s+)*fn\s+(?P<name>\w+)"
		)
	),
	_DeclPattern(
		re.compile(
			r"^(?:(?:public|private|internal|protected|open|override|static|suspend|inline|final|class|mutating)\s+)*"
			r"(?:fun|func)\s+(?:<[^>]*>\s*)?(?P<name>\w+)\s*[(<]"
		)
	),
	_DeclPattern(
		re.compile(
			r"^" + _GENERIC_STATEMENT_START + r"(?:[\w<>\[\],.*&:?]+\s+)+[*&]?(?P<name>[A-Za-z_~]\w*)\s*\([^;]*$"
		)
	),
	_DeclPattern(re.compile(r"^" + _GENERIC_STATEMENT_START + r"(?P<name>\w+)\s*\([^)]*\)\s*\{")),
]
_GENERIC_RECEIVER = re.compile(r"\(\s*\w+\s+\*?(\w+)")
_GENERIC_EXPORTED = re.compile(r"\b(?:public|pub|export)\b")
_GENERIC_IMPORTS = [
	re.compile(r"^import\s+(?:static\s+)?\"?([\w./*-]+)\"?"),
	re.compile(r"^using\s+(?:static\s+)?([\w.]+)\s*;"),
	re.compile(r"^#include\s*[<\"]([^>\"]+)[>\"]"),
	re.compile(r"^use\s+([\w:]+)"),
]
_GO_IMPORT_LINE = re.compile(r"^(?:\w+\s+)?\"([^\"]+)\"")


@dataclass
class _OpenClass:
	name: str
	line: int
	open_depth: int
	is_exported: bool
	body_started: bool = False


@dataclass
class _OpenFunction:
	id: str
	name: str
	line: int
	open_depth: int
	slot: int
	kind: str
	owning_class: Optional[str]
	is_exported: bool
	body_started: bool = False
	calls: List[CallSite] = field(default_factory=list)
	decisions: List[DecisionPoint] = field(default_factory=list)


_Scope = Union[_OpenClass, _OpenFunction]


def _function_kind(pattern_kind: str, name: str, owning_class: Optional[str], is_async: bool) -> str:
	if name in ("constructor", "__init__") or (owning_class is not None and name == owning_class):
		return "constructor"
	if is_async:
		return "async-function"
	if pattern_kind == "arrow":
		return "arrow"
	if owning_class is not None or pattern_kind == "method":
		return "method"
	return "function"


def decision_kind(code: str) -> Optional[str]:
	"""Kind of the first control-flow token family found on a line, by priority."""
	for kind, regex in _DECISION_RULES:
		if regex.search(code):
			return kind
	return None


def decision_weight(code: str) -> int:
	return 1 + len(_OPERATOR_RE.findall(code))


class _FileScan:
	"""Per-file scan state: the open class/function scopes and what was found so far."""

	def __init__(self, file: str, dialect: str):
		self.file = file
		self.dialect = dialect
		self.stack: List[_Scope] = []
		self.classes: List[_OpenClass] = []
		self.functions: List[Optional[FunctionRecord]] = []
		self.imports: List[ImportReference] = []
		self.used_ids: Set[str] = set()
		self.exported_names: Set[str] = set()
		self.all_names: Optional[Set[str]] = None

	def innermost_function(self) -> Optional[_OpenFunction]:
		for scope in reversed(self.stack):
			if isinstance(scope, _OpenFunction):
				return scope
		return None

	def enclosing_class(self) -> Optional[str]:
		if self.stack and isinstance(self.stack[-1], _OpenClass):
			return self.stack[-1].name
		return None

	def _unique_id(self, name: str, owning_class: Optional[str], line: int) -> str:
		base = f"{self.file}:{owning_class}.{name}" if owning_class else f"{self.file}:{name}"
		candidate = base
		if candidate in self.used_ids:
			candidate = f"{base}#{line}"
		suffix = 2
		while candidate in self.used_ids:
			candidate = f"{base}#{line}.{suffix}"
			suffix += 1
		self.used_ids.add(candidate)
		return candidate

	def add_import(self, line: int, target: str) -> None:
		self.imports.append(ImportReference(file=self.file, line=line, target=target))

	def open_class(self, name: str, line: int, open_depth: int, is_exported: bool) -> None:
		scope = _OpenClass(name=name, line=line, open_depth=open_depth, is_exported=is_exported)
		self.classes.append(scope)
		self.stack.append(scope)

	def open_function(
		self,
		name: str,
		line: int,
		open_depth: int,
		pattern_kind: str,
		is_async: bool,
		is_exported: bool,
		owning_class: Optional[str] = None,
	) -> None:
		owner = owning_class or self.enclosing_class()
		scope = _OpenFunction(
			id=self._unique_id(name, owner, line),
			name=name,
			line=line,
			open_depth=open_depth,
			slot=len(self.functions),
			kind=_function_kind(pattern_kind, name, owner, is_async),
			owning_class=owner,
			is_exported=is_exported,
		)
		self.functions.append(None)
		self.stack.append(scope)

	def record_line(self, code: str, call_text: str, raw: str, line: int) -> None:
		fn = self.innermost_function()
		if fn is None:
			return
		for match in _CALL_RE.finditer(call_text):
			callee = match.group(1)
			if callee not in RESERVED_WORDS:
				fn.calls.append(CallSite(callee_name=callee, line=line))
		kind = decision_kind(code)
		if kind is not None:
			fn.decisions.append(
				DecisionPoint(
					kind=kind,
					file=self.file,
					line=line,
					snippet=raw.strip()[:SNIPPET_LIMIT],
					owning_function=fn.id,
					weight=decision_weight(code),
				)
			)

	def close_top(self) -> None:
		scope = self.stack.pop()
		if isinstance(scope, _OpenFunction):
			self.functions[scope.slot] = FunctionRecord(
				id=scope.id,
				name=scope.name,
				file=self.file,
				line=scope.line,
				owning_class=scope.owning_class,
				kind=scope.kind,
				is_exported=scope.is_exported,
				cyclomatic_weight=1 + len(scope.decisions),
				outgoing_calls=scope.calls,
				decision_points=scope.decisions,
			)

	def finish(self) -> ExtractionResult:
		while self.stack:
			self.close_top()
		functions: List[FunctionRecord] = []
		for record in self.functions:
			if record is None:
				continue
			exported = record.is_exported or record.name in self.exported_names
			if self.all_names is not None and record.owning_class is None:
				exported = record.name in self.all_names
			if exported != record.is_exported:
				record = record.model_copy(update={"is_exported": exported})
			functions.append(record)

		classes = [
			ClassRecord(
				name=c.name,
				file=self.file,
				line=c.line,
				method_names=[f.name for f in functions if f.owning_class == c.name],
				is_exported=c.is_exported or c.name in self.exported_names,
			)
			for c in self.classes
		]
		return ExtractionResult(
			classes=classes,
			functions=functions,
			imports=self.imports,
			decision_points=[d for f in functions for d in f.decision_points],
		)


def _strip_block_comments(text: str, in_comment: bool) -> Tuple[str, bool]:
	out: List[str] = []
	i = 0
	while i < len(text):
		if in_comment:
			end = text.find("*/", i)
			if end == -1:
				return "".join(out), True
			i = end + 2
			in_comment = False
		else:
			start = text.find("/*", i)
			if start == -1:
				out.append(text[i:])
				break
			out.append(text[i:start])
			i = start + 2
			in_comment = True
	return "".join(out), in_comment


def _sanitize_braced(raw: str, in_comment: bool) -> Tuple[str, bool]:
	code = _STRING_RE.sub('""', raw)
	code, in_comment = _strip_block_comments(code, in_comment)
	if "//" in code:
		code = code.split("//", 1)[0]
	return code, in_comment


def _sanitize_python(raw: str, open_string: Optional[str]) -> Tuple[str, Optional[str]]:
	"""Code of one line with strings and comments blanked.

	``open_string`` is the triple-quote delimiter still open from earlier lines;
	the delimiter still open at the end of this line is returned with the code.
	"""
	out: List[str] = []
	i = 0
	while i < len(raw):
		if open_string is not None:
			end = raw.find(open_string, i)
			if end == -1:
				return "".join(out), open_string
			out.append('""')
			i = end + 3
			open_string = None
			continue
		ch = raw[i]
		if ch == "#":
			break
		if raw.startswith('"""', i) or raw.startswith("'''", i):
			open_string = raw[i : i + 3]
			i += 3
			continue
		if ch in "\"'":
			match = _STRING_RE.match(raw, i)
			out.append('""')
			if match is None:
				break
			i = match.end()
			continue
		out.append(ch)
		i += 1
	return "".join(out), open_string


def _match_declaration(patterns: List[_DeclPattern], code: str) -> Optional[Tuple[_DeclPattern, "re.Match[str]"]]:
	for pattern in patterns:
		match = pattern.regex.search(code)
		if match and match.group("name") not in RESERVED_WORDS:
			return pattern, match
	return None


def _brace_imports(scan: _FileScan, raw: str, line: int) -> None:
	for regex in _BRACE_IMPORTS:
		for match in regex.finditer(raw):
			scan.add_import(line, match.group(1))
	export_list = _BRACE_EXPORT_LIST.search(raw)
	if export_list:
		for item in export_list.group(1).split(","):
			name = item.strip().split(" ", 1)[0].split(":", 1)[0]
			if name:
				scan.exported_names.add(name)


def _generic_imports(scan: _FileScan, raw: str, line: int) -> None:
	for regex in _GENERIC_IMPORTS:
		match = regex.search(raw)
		if match:
			scan.add_import(line, match.group(1))
			return


def _scan_braced(scan: _FileScan, lines: List[str]) -> None:
	generic = scan.dialect == "generic"
	class_patterns = _GENERIC_CLASSES if generic else [_BRACE_CLASS]
	function_patterns = _GENERIC_FUNCTIONS if generic else _BRACE_FUNCTIONS
	depth = 0
	in_comment = False
	in_go_imports = False
	previous = ""

	for line_no, raw in enumerate(lines, start=1):
		code, in_comment = _sanitize_braced(raw, in_comment)
		stripped = code.strip()
		raw_stripped = raw.strip()

		if generic:
			if in_go_imports:
				if raw_stripped.startswith(")"):
					in_go_imports = False
				else:
					go_match = _GO_IMPORT_LINE.search(raw_stripped)
					if go_match:
						scan.add_import(line_no, go_match.group(1))
				continue
			if raw_stripped in ("import (", "import("):
				in_go_imports = True
				continue
		if not stripped:
			continue

		# A declaration still waiting for its body brace ends when the next line
		# neither opens the body nor continues the declaration.
		while scan.stack and not scan.stack[-1].body_started:
			if stripped.startswith("{") or previous.endswith(_CONTINUATION_SUFFIXES):
				break
			scan.close_top()

		if generic:
			_generic_imports(scan, raw_stripped, line_no)
		else:
			_brace_imports(scan, raw_stripped, line_no)

		call_text = stripped
		class_match = None
		for regex in class_patterns:
			class_match = regex.search(stripped)
			if class_match and class_match.group("name") not in RESERVED_WORDS:
				break
			class_match = None
		if class_match:
			name = class_match.group("name")
			if generic:
				exported = bool(_GENERIC_EXPORTED.search(stripped)) or (
					stripped.startswith("type ") and name[:1].isupper()
				)
			else:
				exported = stripped.startswith("export") or "module.exports" in stripped
			scan.open_class(name, line_no, depth, exported)
			call_text = stripped[class_match.end("name"):]
		else:
			found = _match_declaration(function_patterns, stripped)
			if found:
				pattern, match = found
				name = match.group("name")
				prefix = stripped[: match.end()]
				owning_class = None
				if generic:
					receiver = match.groupdict().get("recv")
					if receiver:
						recv_match = _GENERIC_RECEIVER.search(receiver)
						owning_class = recv_match.group(1) if recv_match else None
					exported = bool(_GENERIC_EXPORTED.search(prefix)) or (
						stripped.startswith("func ") and name[:1].isupper()
					)
					is_async = bool(re.search(r"\b(?:async|suspend)\b", prefix))
				else:
					exported = pattern.exported or stripped.startswith("export") or "module.exports" in stripped
					is_async = bool(re.search(r"\basync\b", prefix))
				scan.open_function(
					name,
					line_no,
					depth,
					pattern.kind,
					is_async=is_async,
					is_exported=exported,
					owning_class=owning_class,
				)
				call_text = stripped[match.end("name"):]

		scan.record_line(stripped, call_text, raw, line_no)

		opens = stripped.count("{")
		depth = max(0, depth + opens - stripped.count("}"))
		if scan.stack and not scan.stack[-1].body_started and opens:
			scan.stack[-1].body_started = True
		while scan.stack:
			top = scan.stack[-1]
			if top.body_started and depth <= top.open_depth:
				scan.close_top()
			elif not top.body_started and top.line == line_no and stripped.endswith(";"):
				scan.close_top()
			else:
				break
		previous = stripped


def _indentation(raw: str) -> int:
	expanded = raw.expandtabs(4)
	return len(expanded) - len(expanded.lstrip())


def _scan_indented(scan: _FileScan, lines: List[str]) -> None:
	open_string: Optional[str] = None
	bracket_balance = 0
	continued = False
	collecting_all = False

	for line_no, raw in enumerate(lines, start=1):
		# A line starting inside a multi-line string continues the statement that opened it.
		inside_string = open_string is not None
		code, open_string = _sanitize_python(raw, open_string)

		raw_stripped = raw.strip()
		if collecting_all or (not inside_string and _INDENT_ALL.search(raw_stripped)):
			if scan.all_names is None:
				scan.all_names = set()
			scan.all_names.update(_QUOTED_NAME.findall(raw_stripped))
			collecting_all = not any(ch in raw_stripped for ch in "])")

		stripped = code.strip()
		if not stripped:
			continue
		indent = _indentation(raw)
		call_text = stripped

		if bracket_balance == 0 and not continued and not inside_string:
			while scan.stack and scan.stack[-1].open_depth >= indent:
				scan.close_top()

			import_match = _INDENT_IMPORT.search(stripped)
			from_match = _INDENT_FROM.search(stripped)
			if from_match:
				scan.add_import(line_no, from_match.group(1))
			elif import_match:
				for item in import_match.group(1).split(","):
					scan.add_import(line_no, item.strip().split(" ", 1)[0])

			class_match = _INDENT_CLASS.search(stripped)
			if class_match and class_match.group("name") not in RESERVED_WORDS:
				name = class_match.group("name")
				scan.open_class(name, line_no, indent, indent == 0 and not name.startswith("_"))
				call_text = stripped[class_match.end("name"):]
			else:
				found = _match_declaration(_INDENT_FUNCTIONS, stripped)
				if found:
					pattern, match = found
					name = match.group("name")
					scan.open_function(
						name,
						line_no,
						indent,
						pattern.kind,
						is_async=stripped.startswith("async"),
						is_exported=indent == 0 and not name.startswith("_"),
					)
					call_text = stripped[match.end("name"):]

		scan.record_line(stripped, call_text, raw, line_no)

		bracket_balance = max(
			0,
			bracket_balance + sum(stripped.count(ch) for ch in "([{") - sum(stripped.count(ch) for ch in ")]}"),
		)
		continued = stripped.endswith("\\")


def extract_file(path: str, text: str, dialect: str) -> ExtractionResult:
	"""Extract records from one file's text in a single forward pass.

	``path`` is the file identity used in records (normally the path relative
	to the scan root). State never outlives the call.
	"""
	scan = _FileScan(path, dialect)
	lines = text.splitlines()
	if dialect == "indent":
		_scan_indented(scan, lines)
	else:
		_scan_braced(scan, lines)
	return scan.finish()

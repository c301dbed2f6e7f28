"""Include/exclude pattern matching for project file discovery.

Three pattern shapes are recognised, checked in this order:

  ``dir/**``  directory prune: matches ``dir`` itself and anything below it
  ``*.ext``   extension suffix: case-sensitive ``endswith``
  other       glob: ``*`` and ``**`` match any run of characters (including
              ``/``), ``?`` matches one character; the whole path must match

Paths are relative to the project root and ``/``-separated.
"""

from __future__ import annotations

import functools
import re

DEFAULT_INCLUDE_PATTERNS: tuple[str, ...] = (
    "*.php", "*.phtml", "*.php3", "*.php4", "*.php5", "*.php7", "*.php8",
    "*.py", "*.pyw", "*.pyi", "*.pyc", "*.pyo",
    "*.js", "*.jsx", "*.mjs", "*.cjs",
    "*.ts", "*.tsx", "*.mts", "*.cts",
    "*.java", "*.jav", "*.jsp", "*.jspx",
    "*.cpp", "*.cxx", "*.cc", "*.c++", "*.hpp", "*.hxx", "*.h++",
    "*.c", "*.h",
    "*.cs", "*.csx",
    "*.go", "*.gox",
    "*.rs", "*.rlib",
    "*.rb", "*.rbw", "*.rake", "*.gemspec",
    "*.swift", "*.swiftinterface",
    "*.kt", "*.kts",
    "*.scala", "*.sc",
    "*.clj", "*.cljs", "*.cljc", "*.edn",
    "*.hs", "*.lhs",
    "*.ml", "*.mli", "*.fs", "*.fsi", "*.fsx", "*.fsscript",
    "*.erl", "*.hrl", "*.ex", "*.exs",
    "*.lua", "*.luac",
    "*.r", "*.R", "*.Rmd", "*.rmd",
    "*.m", "*.mm", "*.M",
    "*.pl", "*.pm", "*.t", "*.pod",
    "*.sh", "*.bash", "*.zsh", "*.fish", "*.ps1", "*.psm1", "*.psd1",
    "*.sql", "*.psql", "*.mysql", "*.sqlite",
    "*.html", "*.htm", "*.xhtml", "*.xml", "*.svg", "*.vue", "*.svelte",
    "*.css", "*.scss", "*.sass", "*.less", "*.styl",
    "*.md", "*.markdown", "*.mdown", "*.mkdn", "*.mdx",
    "*.txt", "*.text", "*.rtf",
    "*.yml", "*.yaml", "*.json", "*.jsonc", "*.json5",
    "*.toml", "*.ini", "*.cfg", "*.conf", "*.config",
    "*.dockerfile", "*.Dockerfile",
    "*.tf", "*.tfvars",
    "*.proto", "*.thrift", "*.graphql", "*.gql",
    "*.asm", "*.s", "*.S",
    "*.dart", "*.dartx",
    "*.elm",
    "*.nim", "*.nims",
    "*.zig",
    "*.v", "*.vh", "*.sv", "*.svh",
    "*.tex", "*.ltx", "*.sty",
    "*.rst", "*.rest",
    "*.adoc", "*.asciidoc",
    "*.org", "*.org_archive",
)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "node_modules", "node_modules/**",
    ".git", ".git/**",
    "dist", "dist/**",
    "build", "build/**",
    "out", "out/**",
    "coverage", "coverage/**",
    "__pycache__", "__pycache__/**",
    "venv", "venv/**", ".venv", ".venv/**",
    ".next", ".next/**",
    "target", "target/**",
    ".cache", ".cache/**",
    "*.log", "*.tmp",
)


def matches_pattern(path: str, pattern: str) -> bool:
    """Return True if the relative *path* matches *pattern*."""
    if pattern.endswith("/**"):
        base = pattern[:-3]
        return path == base or path.startswith(base + "/")

    if pattern.startswith("*."):
        return path.endswith(pattern[1:])

    return _glob_regex(pattern).fullmatch(path) is not None


def matches_any(path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    return any(matches_pattern(path, p) for p in patterns)


@functools.lru_cache(maxsize=512)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    escaped = re.escape(pattern)
    escaped = escaped.replace(r"\*\*", ".*").replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(escaped, re.DOTALL)

"""
Lexer for pest conformance scripts.

Converts source text into a stream of tokens for the parser.
Supports:
- Significant newlines (NEWLINE tokens terminate statements)
- Identifiers and decimal, hex (0x) and octal (leading 0) integers
- Double-quoted strings with C-style escapes
- Template literals (:text{expr}text) with no escape processing
- Arithmetic, comparison and logical operators

Unlike a raising tokenizer, lexical errors are recorded in
``Lexer.diagnostics`` and scanning continues, so one pass reports every
problem in the file.
"""

from typing import List, Optional, Iterator, Union
from .tokens import Token, TokenType, SourceLocation, SourceSpan
from .runtime.values import canonical_text
from .errors import (
    DiagnosticCollector,
    LexerError,
    error_invalid_character,
    error_unterminated_string,
    error_unknown_escape,
    error_illegal_escape_character,
    error_invalid_code_point,
    error_expected_double,
    error_invalid_integer,
)


SIMPLE_ESCAPES = {
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
    'v': '\v',
    '\\': '\\',
    '"': '"',
}

# (digits, base, max value) for numeric escapes, keyed by introducer
NUMERIC_ESCAPES = {
    'x': (2, 16, 0xFF),
    'u': (4, 16, 0x10FFFF),
    'U': (8, 16, 0x10FFFF),
}

SINGLE_CHAR_TOKENS = {
    '\n': TokenType.NEWLINE,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '.': TokenType.DOT,
    '~': TokenType.ASSERT,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
}

# single char -> (token alone, token when followed by '=')
EQUALS_PAIRS = {
    '=': (TokenType.ASSIGN, TokenType.EQ),
    '!': (TokenType.NOT, TokenType.NE),
    '<': (TokenType.LT, TokenType.LE),
    '>': (TokenType.GT, TokenType.GE),
}

INT64_LIMIT = 1 << 64


def decode_source(source: Union[str, bytes]) -> str:
    """Decode script bytes, keeping undecodable bytes as surrogate escapes."""
    if isinstance(source, bytes):
        return source.decode("utf-8", errors="surrogateescape")
    return source


def byte_char(value: int) -> str:
    """Character that encodes to the single byte ``value`` under surrogateescape."""
    if value < 0x80:
        return chr(value)
    return chr(0xDC00 + value)


def is_letter(ch: str) -> bool:
    return 'a' <= ch <= 'z' or 'A' <= ch <= 'Z' or ch == '_'


def is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def digit_value(ch: str) -> int:
    if '0' <= ch <= '9':
        return ord(ch) - ord('0')
    if 'a' <= ch <= 'f':
        return ord(ch) - ord('a') + 10
    if 'A' <= ch <= 'F':
        return ord(ch) - ord('A') + 10
    return 16  # larger than any legal digit value


class Lexer:
    """
    Tokenizer for pest scripts.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)

    A lexer makes a single forward pass; scanning again needs a new
    instance.
    """

    def __init__(self, source: Union[str, bytes], filename: Optional[str] = None):
        self.source = decode_source(source)
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None
        self.diagnostics = DiagnosticCollector()
        self._done = False

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.split('\n')
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1].rstrip('\r')
        return None

    @property
    def has_errors(self) -> bool:
        return self.diagnostics.has_errors

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _error(self, error: LexerError) -> None:
        self.diagnostics.add_error(error)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None, continues: bool = False) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span, continues)

    def _skip_whitespace(self) -> None:
        """Skip spaces, tabs and carriage returns; newlines are tokens."""
        while not self._is_at_end() and self._peek() in ' \t\r':
            self._advance()

    def _scan_identifier(self) -> Token:
        start = self._location()
        while is_letter(self._peek()) or is_digit(self._peek()):
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_integer(self) -> Token:
        """Scan a decimal, hex (0x) or octal (leading 0) integer literal."""
        start = self._location()
        base = 10
        if self._peek() == '0':
            self._advance()
            if self._peek() in ('x', 'X'):
                self._advance()
                base = 16
            else:
                base = 8
        digits_start = self.pos
        while digit_value(self._peek()) < base:
            self._advance()
        digits = self.source[digits_start:self.pos]
        lexeme = self.source[start.offset:self.pos]

        if base == 16 and not digits:
            self._error(error_invalid_integer(lexeme, self._span(start),
                                              self.get_source_line(start.line)))
            return self._make_token(TokenType.INT_LITERAL, 0, start, lexeme)

        value = int(digits, base) if digits else 0
        if value >= INT64_LIMIT:
            self._error(error_invalid_integer(lexeme, self._span(start),
                                              self.get_source_line(start.line)))
            value = 0
        elif value >= INT64_LIMIT >> 1:
            value -= INT64_LIMIT
        return self._make_token(TokenType.INT_LITERAL, value, start, lexeme)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal, decoding escapes."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while True:
            ch = self._peek()
            if self._is_at_end() or ch == '\n':
                self._error(error_unterminated_string(self._span(start),
                                                      self.get_source_line(start.line)))
                break
            if ch == '"':
                self._advance()
                break
            if ch == '\\':
                esc_start = self._location()
                self._advance()
                chars.append(self._scan_escape(esc_start))
            else:
                chars.append(self._advance())

        return self._make_token(TokenType.STRING_LITERAL, canonical_text(''.join(chars)), start)

    def _scan_escape(self, esc_start: SourceLocation) -> str:
        """Decode an escape sequence; the backslash is already consumed."""
        ch = self._peek()
        if ch in SIMPLE_ESCAPES:
            self._advance()
            return SIMPLE_ESCAPES[ch]

        if ch in '01234567':
            count, base, limit = 3, 8, 0xFF
        elif ch in NUMERIC_ESCAPES:
            self._advance()
            count, base, limit = NUMERIC_ESCAPES[ch]
        else:
            # leave newline and end of input for the unterminated-string check
            if not self._is_at_end() and ch != '\n':
                self._advance()
            self._error(error_unknown_escape(ch if ch != '\0' else '', self._span(esc_start),
                                             self.get_source_line(esc_start.line)))
            return ''

        value = 0
        failed = False
        while count > 0:
            ch = self._peek()
            if self._is_at_end() or ch in '"\n':
                break
            digit = digit_value(ch)
            if digit >= base:
                failed = True
                break
            value = value * base + digit
            self._advance()
            count -= 1

        if count > 0:
            failed = True
            here = self._location()
            self._error(error_illegal_escape_character(SourceSpan(here, here),
                                                       self.get_source_line(here.line)))
            # consume the rest of the escape
            while count > 0 and not self._is_at_end() and self._peek() not in '"\n':
                self._advance()
                count -= 1

        if value > limit or 0xD800 <= value < 0xE000:
            failed = True
            self._error(error_invalid_code_point(self._span(esc_start),
                                                 self.get_source_line(esc_start.line)))

        if failed:
            return ''
        if limit == 0xFF:
            return byte_char(value)
        return chr(value)

    def _scan_template_part(self, token_type: TokenType) -> Token:
        """Scan a template segment opened by ':' or '}'.

        The segment runs to an unescaped '{' (an embedded expression
        follows) or to the end of the line (the template is complete).
        The newline itself is left for the NEWLINE token.
        """
        start = self._location()
        self._advance()  # consume ':' or '}'

        chars = []
        while not self._is_at_end() and self._peek() not in '\n{':
            chars.append(self._advance())

        continues = self._peek() == '{' and not self._is_at_end()
        if continues:
            self._advance()
        text = ''.join(chars)
        if not continues and text.endswith('\r'):
            text = text[:-1]
        return self._make_token(token_type, text, start, continues=continues)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace()

        start = self._location()
        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, "")

        ch = self._peek()

        if is_letter(ch):
            return self._scan_identifier()
        if is_digit(ch):
            return self._scan_integer()
        if ch == '"':
            return self._scan_string()
        if ch == ':':
            return self._scan_template_part(TokenType.TEMPLATE_START)
        if ch == '}':
            return self._scan_template_part(TokenType.TEMPLATE_CONT)

        self._advance()

        if ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        if ch in EQUALS_PAIRS:
            alone, with_equals = EQUALS_PAIRS[ch]
            if self._peek() == '=':
                self._advance()
                return self._make_token(with_equals, ch + '=', start)
            return self._make_token(alone, ch, start)

        if ch in '&|':
            if self._peek() == ch:
                self._advance()
                token_type = TokenType.AND if ch == '&' else TokenType.OR
                return self._make_token(token_type, ch * 2, start)
            self._error(error_expected_double(ch, self._span(start),
                                              self.get_source_line(start.line)))
            return self._make_token(TokenType.INVALID, None, start)

        self._error(error_invalid_character(ch, self._span(start),
                                            self.get_source_line(start.line)))
        return self._make_token(TokenType.INVALID, None, start)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, ending with a single EOF."""
        while not self._done:
            token = self._scan_token()
            if token.type == TokenType.EOF:
                self._done = True
            yield token


def tokenize(source: Union[str, bytes], filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Lexical errors do not raise; use a ``Lexer`` directly to inspect
    its ``diagnostics``.

    Args:
        source: The script source to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with EOF
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()

"""Lexer and recursive descent parser for riverflow source.

Grammar:
    program      = statement* EOF
    statement    = flowout | dam | river | flow | capacity | update
    river        = "River" IDENT "=" expr ";"
    update       = IDENT "=" expr ";"
    flow         = "Flow" IDENT "=" expr ";"
    capacity     = "Capacity" IDENT "=" NUMBER "ML" ";"
    flowout      = "FlowOut" IDENT "=" NUMBER ";"
    dam          = "Dam" IDENT "=" NUMBER "ML" ["release" NUMBER "%"] ";"
    expr         = flow_expr
    flow_expr    = add_expr ("->" add_expr)*
    add_expr     = primary ("+" primary)*
    primary      = IDENT
                 | NUMBER ["(" NUMBER ")"] "mm"
                 | NUMBER
                 | "[" NUMBER ("," NUMBER)* "]" "mm"
                 | "(" expr ")"
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from . import ast
from .errors import LexError, ParseError

DEFAULT_RELEASE_PERCENT = 80.0


class TokenType(Enum):
    # Keywords
    RIVER = "River"
    FLOW = "Flow"
    CAPACITY = "Capacity"
    FLOWOUT = "FlowOut"
    DAM = "Dam"
    RELEASE = "release"

    # Literals and units
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    MM = "mm"
    ML = "ML"
    PERCENT = "%"

    # Operators and punctuation
    PLUS = "+"
    ARROW = "->"
    EQUAL = "="
    COMMA = ","
    SEMICOLON = ";"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"

    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    type: TokenType
    lexeme: str
    line: int
    literal: float | None = None


class Lexer:
    """Tokenizer for riverflow source.

    Unrecognised characters are recorded in ``errors`` and skipped, so one
    pass reports every bad character in the file.
    """

    KEYWORDS = {
        "River": TokenType.RIVER,
        "Flow": TokenType.FLOW,
        "Capacity": TokenType.CAPACITY,
        "FlowOut": TokenType.FLOWOUT,
        "Dam": TokenType.DAM,
        "release": TokenType.RELEASE,
    }

    UNITS = {
        "mm": TokenType.MM,
        "ML": TokenType.ML,
    }

    SINGLE_CHAR = {
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        ",": TokenType.COMMA,
        "+": TokenType.PLUS,
        ";": TokenType.SEMICOLON,
        "=": TokenType.EQUAL,
        "%": TokenType.PERCENT,
    }

    def __init__(self, source: str):
        self.source = source
        self.start = 0
        self.pos = 0
        self.line = 1
        self.tokens: list[Token] = []
        self.errors: list[tuple[int, str]] = []

    def tokenize(self) -> list[Token]:
        while not self._at_end():
            self.start = self.pos
            self._scan_token()

        self.tokens.append(Token(TokenType.EOF, "", self.line))
        return self.tokens

    def _scan_token(self) -> None:
        ch = self._advance()

        if ch in self.SINGLE_CHAR:
            self._add(self.SINGLE_CHAR[ch])
        elif ch == "-":
            if self._peek() == ">":
                self._advance()
                self._add(TokenType.ARROW)
            else:
                self._error("Expected '>' after '-'.")
        elif ch in " \r\t":
            pass
        elif ch == "\n":
            self.line += 1
        elif ch == "#":
            while self._peek() not in ("\n", ""):
                self._advance()
        elif _is_digit(ch):
            self._read_number()
        elif _is_alpha(ch):
            self._read_word()
        else:
            self._error(f"Unexpected character: {ch}")

    def _read_number(self) -> None:
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
        text = self.source[self.start : self.pos]
        self._add(TokenType.NUMBER, float(text))

    def _read_word(self) -> None:
        while _is_alpha(self._peek()) or _is_digit(self._peek()):
            self._advance()

        # "abc%" collapses into a single percent marker
        if self._peek() == "%":
            self._advance()
            self._add(TokenType.PERCENT)
            return

        text = self.source[self.start : self.pos]
        if text in self.KEYWORDS:
            self._add(self.KEYWORDS[text])
        elif text in self.UNITS:
            self._add(self.UNITS[text])
        else:
            self._add(TokenType.IDENTIFIER)

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        return ch

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return ""

    def _add(self, ttype: TokenType, literal: float | None = None) -> None:
        lexeme = self.source[self.start : self.pos]
        self.tokens.append(Token(ttype, lexeme, self.line, literal))

    def _error(self, msg: str) -> None:
        self.errors.append((self.line, msg))


def _is_alpha(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_digit(ch: str) -> bool:
    return ch != "" and "0" <= ch <= "9"


def scan(source: str) -> list[Token]:
    """Tokenize source, raising LexError with every problem found."""
    lexer = Lexer(source)
    tokens = lexer.tokenize()
    if lexer.errors:
        raise LexError(lexer.errors, tokens)
    return tokens


class Parser:
    """Recursive descent parser producing a Program."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def at(self, *types: TokenType) -> bool:
        return self.peek().type in types

    def advance(self) -> Token:
        tok = self.peek()
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def match(self, *types: TokenType) -> Token | None:
        if self.at(*types):
            return self.advance()
        return None

    def consume(self, ttype: TokenType, msg: str) -> Token:
        if self.at(ttype):
            return self.advance()
        raise self.error(self.peek(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        lexeme = None if tok.type == TokenType.EOF else tok.lexeme
        return ParseError(msg, tok.line, lexeme)

    def parse_program(self, path: str = "") -> ast.Program:
        """Parse every statement up to EOF. The first error aborts."""
        program = ast.Program(path=path)
        while not self.at(TokenType.EOF):
            program.statements.append(self.parse_statement())
        return program

    def parse_statement(self) -> ast.Stmt:
        if self.match(TokenType.FLOWOUT):
            return self.parse_flow_out()
        if self.match(TokenType.DAM):
            return self.parse_dam()
        if self.match(TokenType.RIVER):
            return self.parse_river()
        if self.match(TokenType.FLOW):
            return self.parse_flow()
        if self.match(TokenType.CAPACITY):
            return self.parse_capacity()
        if self.at(TokenType.IDENTIFIER):
            return self.parse_update()
        raise self.error(self.peek(), "Expect declaration.")

    def parse_flow_out(self) -> ast.FlowOutDecl:
        name = self.consume(TokenType.IDENTIFIER, "Expect FlowOut name.")
        self.consume(TokenType.EQUAL, "Expect '=' after FlowOut name.")
        value = self.consume(TokenType.NUMBER, "Expect number after '='.")
        self.consume(TokenType.SEMICOLON, "Expect ';' after FlowOut declaration.")
        return ast.FlowOutDecl(name=name.lexeme, days=value.literal, line=name.line)

    def parse_dam(self) -> ast.DamDecl:
        name = self.consume(TokenType.IDENTIFIER, "Expect dam name.")
        self.consume(TokenType.EQUAL, "Expect '=' after dam name.")
        capacity = self.consume(TokenType.NUMBER, "Expect capacity number.")
        self.consume(TokenType.ML, "Expect 'ML' after capacity.")

        release = DEFAULT_RELEASE_PERCENT
        if self.match(TokenType.RELEASE):
            tok = self.consume(TokenType.NUMBER, "Expect release percentage.")
            self.consume(TokenType.PERCENT, "Expect '%' after release percentage.")
            release = tok.literal

        self.consume(TokenType.SEMICOLON, "Expect ';' after dam declaration.")
        return ast.DamDecl(
            name=name.lexeme,
            capacity_ml=capacity.literal,
            release_percent=release,
            line=name.line,
        )

    def parse_river(self) -> ast.RiverDecl:
        name = self.consume(TokenType.IDENTIFIER, "Expect river name.")
        self.consume(TokenType.EQUAL, "Expect '=' after river name.")
        expr = self.parse_expr()
        self.consume(TokenType.SEMICOLON, "Expect ';' after river declaration.")
        return ast.RiverDecl(name=name.lexeme, expr=expr, line=name.line)

    def parse_update(self) -> ast.RiverUpdate:
        name = self.consume(TokenType.IDENTIFIER, "Expect river name.")
        self.consume(TokenType.EQUAL, "Expect '=' after river name.")
        expr = self.parse_expr()
        self.consume(TokenType.SEMICOLON, "Expect ';' after river update.")
        return ast.RiverUpdate(name=name.lexeme, expr=expr, line=name.line)

    def parse_flow(self) -> ast.FlowDecl:
        name = self.consume(TokenType.IDENTIFIER, "Expect flow name.")
        self.consume(TokenType.EQUAL, "Expect '=' after flow name.")
        expr = self.parse_expr()
        self.consume(TokenType.SEMICOLON, "Expect ';' after flow declaration.")
        return ast.FlowDecl(name=name.lexeme, expr=expr, line=name.line)

    def parse_capacity(self) -> ast.CapacityDecl:
        name = self.consume(TokenType.IDENTIFIER, "Expect capacity name.")
        self.consume(TokenType.EQUAL, "Expect '=' after capacity name.")
        value = self.consume(TokenType.NUMBER, "Expect number after '='.")
        self.consume(TokenType.ML, "Expect 'ML' after number.")
        self.consume(TokenType.SEMICOLON, "Expect ';' after capacity declaration.")
        return ast.CapacityDecl(name=name.lexeme, value_ml=value.literal, line=name.line)

    def parse_expr(self) -> ast.Expr:
        return self.parse_flow_expr()

    def parse_flow_expr(self) -> ast.Expr:
        left = self.parse_add()
        while tok := self.match(TokenType.ARROW):
            right = self.parse_add()
            left = ast.BinOp(op="->", left=left, right=right, line=tok.line)
        return left

    def parse_add(self) -> ast.Expr:
        left = self.parse_primary()
        while tok := self.match(TokenType.PLUS):
            right = self.parse_primary()
            left = ast.BinOp(op="+", left=left, right=right, line=tok.line)
        return left

    def parse_primary(self) -> ast.Expr:
        if tok := self.match(TokenType.NUMBER):
            if self.match(TokenType.LPAREN):
                days = self.consume(TokenType.NUMBER, "Expect number of days.")
                self.consume(TokenType.RPAREN, "Expect ')' after days.")
                self.consume(TokenType.MM, "Expect 'mm' after rainfall.")
                return ast.RainfallSpec(amount=tok.literal, days=int(days.literal), line=tok.line)
            if self.match(TokenType.MM):
                return ast.RainfallSpec(amount=tok.literal, days=1, line=tok.line)
            return ast.NumberLit(value=tok.literal, line=tok.line)

        if tok := self.match(TokenType.LBRACKET):
            amounts = [self.consume(TokenType.NUMBER, "Expect rainfall amount.").literal]
            while self.match(TokenType.COMMA):
                amounts.append(self.consume(TokenType.NUMBER, "Expect rainfall amount.").literal)
            self.consume(TokenType.RBRACKET, "Expect ']' after rainfall array.")
            self.consume(TokenType.MM, "Expect 'mm' after rainfall array.")
            return ast.RainfallSeries(amounts=amounts, line=tok.line)

        if tok := self.match(TokenType.IDENTIFIER):
            return ast.Var(name=tok.lexeme, line=tok.line)

        if tok := self.match(TokenType.LPAREN):
            expr = self.parse_expr()
            self.consume(TokenType.RPAREN, "Expect ')' after expression.")
            return ast.Grouping(expr=expr, line=tok.line)

        raise self.error(self.peek(), "Expect expression.")


def parse_program(tokens: list[Token], path: str = "") -> ast.Program:
    return Parser(tokens).parse_program(path)


def parse(source: str, path: str = "") -> ast.Program:
    """Scan and parse source. Lex problems raise before parsing starts."""
    return parse_program(scan(source), path)


def parse_file(filepath: str | Path) -> ast.Program:
    filepath = Path(filepath)
    return parse(filepath.read_text(), str(filepath))

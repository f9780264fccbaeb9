"""NoteG parser: converts a token stream into an AST."""

from __future__ import annotations

from collections.abc import Callable

from noteg.ast import (
    Array,
    BinaryExpr,
    Block,
    Call,
    For,
    Function,
    Identifier,
    If,
    Let,
    Literal,
    Node,
    Object,
    Program,
    Return,
    Template,
    UnaryExpr,
    While,
)
from noteg.errors import ParseError
from noteg.lexer import tokenize
from noteg.tokens import Token, TokenType, describe_error_token


class Parser:
    """Recursive descent parser with one method per precedence level."""

    def __init__(self, tokens: list[Token], source: str = "") -> None:
        self._tokens = tokens
        self._source = source
        self._pos = 0

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _previous(self) -> Token:
        return self._tokens[self._pos - 1]

    def _at_eof(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _check(self, tt: TokenType) -> bool:
        return not self._at_eof() and self._peek().type == tt

    def _advance(self) -> Token:
        if not self._at_eof():
            self._pos += 1
        return self._previous()

    def _match(self, *types: TokenType) -> bool:
        for tt in types:
            if self._check(tt):
                self._advance()
                return True
        return False

    def _expect(self, tt: TokenType, message: str) -> Token:
        if self._check(tt):
            return self._advance()
        raise self._error(message)

    def _error(self, message: str, tok: Token | None = None) -> ParseError:
        if tok is None:
            tok = self._peek()
        return ParseError(message, tok.line, tok.column, self._source)

    # ------------------------------------------------------------------
    # Declarations and statements
    # ------------------------------------------------------------------

    def parse(self) -> Program:
        body: list[Node] = []
        try:
            while not self._at_eof():
                body.append(self._declaration())
        except RecursionError:
            raise self._error("Nesting too deep to parse") from None
        return Program(tuple(body))

    def _declaration(self) -> Node:
        if self._check(TokenType.LET):
            return self._let_declaration()
        if self._check(TokenType.FN):
            return self._function_declaration()
        return self._statement()

    def _let_declaration(self) -> Let:
        line = self._advance().line  # consume 'let'
        name = self._expect(TokenType.IDENTIFIER, "Expected variable name").value
        self._expect(TokenType.ASSIGN, "Expected '=' after variable name")
        return Let(name, self._expression(), line)

    def _function_declaration(self) -> Function:
        line = self._advance().line  # consume 'fn'
        name = self._expect(TokenType.IDENTIFIER, "Expected function name").value
        self._expect(TokenType.LPAREN, "Expected '(' after function name")

        params: list[str] = []
        if not self._check(TokenType.RPAREN):
            params.append(self._expect(TokenType.IDENTIFIER, "Expected parameter name").value)
            while self._match(TokenType.COMMA):
                params.append(
                    self._expect(TokenType.IDENTIFIER, "Expected parameter name").value
                )
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")

        return Function(name, tuple(params), self._block(), line)

    def _statement(self) -> Node:
        if self._check(TokenType.IF):
            return self._if_statement()
        if self._check(TokenType.FOR):
            return self._for_statement()
        if self._check(TokenType.WHILE):
            return self._while_statement()
        if self._check(TokenType.RETURN):
            return self._return_statement()
        if self._check(TokenType.LBRACE):
            return self._block()
        return self._expression()

    def _if_statement(self) -> If:
        line = self._advance().line  # consume 'if'
        condition = self._expression()
        then_branch = self._block()

        else_branch: Block | If | None = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                else_branch = self._if_statement()
            else:
                else_branch = self._block()

        return If(condition, then_branch, else_branch, line)

    def _for_statement(self) -> For:
        line = self._advance().line  # consume 'for'
        variable = self._expect(TokenType.IDENTIFIER, "Expected variable name").value
        in_tok = self._expect(TokenType.IDENTIFIER, "Expected 'in' after loop variable")
        if in_tok.value != "in":
            raise self._error("Expected 'in' after loop variable", in_tok)
        iterable = self._expression()
        return For(variable, iterable, self._block(), line)

    def _while_statement(self) -> While:
        line = self._advance().line  # consume 'while'
        condition = self._expression()
        return While(condition, self._block(), line)

    def _return_statement(self) -> Return:
        line = self._advance().line  # consume 'return'
        value: Node | None = None
        if not self._check(TokenType.RBRACE) and not self._at_eof():
            value = self._expression()
        return Return(value, line)

    def _block(self) -> Block:
        line = self._expect(TokenType.LBRACE, "Expected '{'").line
        statements: list[Node] = []
        while not self._check(TokenType.RBRACE) and not self._at_eof():
            statements.append(self._declaration())
        self._expect(TokenType.RBRACE, "Expected '}'")
        return Block(tuple(statements), line)

    # ------------------------------------------------------------------
    # Expressions, loosest binding first
    # ------------------------------------------------------------------

    def _expression(self) -> Node:
        return self._or()

    def _or(self) -> Node:
        return self._left_assoc(self._and, TokenType.OR)

    def _and(self) -> Node:
        return self._left_assoc(self._equality, TokenType.AND)

    def _equality(self) -> Node:
        return self._left_assoc(self._comparison, TokenType.EQ, TokenType.NEQ)

    def _comparison(self) -> Node:
        return self._left_assoc(
            self._term, TokenType.LT, TokenType.GT, TokenType.LTE, TokenType.GTE
        )

    def _term(self) -> Node:
        return self._left_assoc(self._factor, TokenType.PLUS, TokenType.MINUS)

    def _factor(self) -> Node:
        return self._left_assoc(self._unary, TokenType.STAR, TokenType.SLASH, TokenType.PERCENT)

    def _left_assoc(self, operand: Callable[[], Node], *operators: TokenType) -> Node:
        left = operand()
        while self._match(*operators):
            op_tok = self._previous()
            right = operand()
            left = BinaryExpr(op_tok.value, left, right, op_tok.line)
        return left

    def _unary(self) -> Node:
        if self._match(TokenType.NOT, TokenType.MINUS):
            op_tok = self._previous()
            return UnaryExpr(op_tok.value, self._unary(), op_tok.line)
        return self._call()

    def _call(self) -> Node:
        expr = self._primary()
        while self._match(TokenType.LPAREN):
            line = self._previous().line
            args = self._comma_list(TokenType.RPAREN)
            self._expect(TokenType.RPAREN, "Expected ')' after arguments")
            expr = Call(expr, args, line)
        return expr

    def _comma_list(self, closer: TokenType) -> tuple[Node, ...]:
        """Comma-separated expressions up to (not including) closer."""
        items: list[Node] = []
        if not self._check(closer):
            items.append(self._expression())
            while self._match(TokenType.COMMA):
                items.append(self._expression())
        return tuple(items)

    def _primary(self) -> Node:
        tok = self._peek()

        if self._match(TokenType.TRUE):
            return Literal(True, tok.line)
        if self._match(TokenType.FALSE):
            return Literal(False, tok.line)
        if self._match(TokenType.NUMBER):
            try:
                value = float(tok.value) if "." in tok.value else int(tok.value)
            except ValueError:
                raise self._error("Number literal too long", tok) from None
            return Literal(value, tok.line)
        if self._match(TokenType.STRING):
            return Literal(tok.value, tok.line)
        if self._match(TokenType.IDENTIFIER):
            return Identifier(tok.value, tok.line)

        if self._match(TokenType.TEMPLATE_START):
            variable = self._expect(TokenType.IDENTIFIER, "Expected variable name").value
            self._expect(TokenType.TEMPLATE_END, "Expected '}}'")
            return Template(variable, tok.line)

        if self._match(TokenType.LBRACKET):
            elements = self._comma_list(TokenType.RBRACKET)
            self._expect(TokenType.RBRACKET, "Expected ']'")
            return Array(elements, tok.line)

        if self._match(TokenType.LBRACE):
            return self._object_literal(tok.line)

        if self._match(TokenType.LPAREN):
            expr = self._expression()
            self._expect(TokenType.RPAREN, "Expected ')'")
            return expr

        if tok.type == TokenType.ERROR:
            raise self._error(describe_error_token(tok))
        if tok.type == TokenType.EOF:
            raise self._error("Unexpected end of input")
        raise self._error(f"Unexpected token: {tok.value}")

    def _object_literal(self, line: int) -> Object:
        properties: list[tuple[str, Node]] = []
        if not self._check(TokenType.RBRACE):
            properties.append(self._object_property())
            while self._match(TokenType.COMMA):
                properties.append(self._object_property())
        self._expect(TokenType.RBRACE, "Expected '}' after object literal")
        return Object(tuple(properties), line)

    def _object_property(self) -> tuple[str, Node]:
        if not self._match(TokenType.IDENTIFIER, TokenType.STRING):
            raise self._error("Expected property name")
        key = self._previous().value
        self._expect(TokenType.COLON, "Expected ':' after property name")
        return key, self._expression()


def parse(source: str) -> Program:
    """Convenience function: parse source text and return a Program AST."""
    return Parser(tokenize(source), source).parse()


def parse_tokens(tokens: list[Token]) -> Program:
    """Parse an already-scanned token list."""
    return Parser(tokens).parse()

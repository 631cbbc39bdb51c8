"""Parser for GGL (Graph Generation Language) programs."""

from __future__ import annotations

from typing import Any

import ply.yacc as yacc

from ggl.parsing.ast import (
    ApplyStmt,
    BinaryOp,
    EdgeDecl,
    Expr,
    ForStmt,
    FormattedString,
    GenerateStmt,
    Identifier,
    IfStmt,
    LetStmt,
    Literal,
    NodeDecl,
    PatternBlock,
    Program,
    RuleDef,
    UnaryOp,
)
from ggl.parsing.lexer import GGLLexer, unescape


class GGLParser:
    """LALR parser for GGL programs.

    String literals are split into literal text and ``{expr}`` placeholders
    here; placeholder bodies go through a second parser instance built with
    ``start="expression"`` so the outer parse keeps its own lexer state.
    """

    tokens = GGLLexer.tokens

    # Operator precedence: loosest to tightest
    precedence = (
        ("nonassoc", "EQEQ", "NEQ", "LT", "LE", "GT", "GE"),
        ("left", "PLUS", "MINUS"),
        ("left", "STAR", "SLASH", "PERCENT"),
        ("right", "UMINUS"),
    )

    def __init__(self, start: str = "program") -> None:
        self.start = start
        self.lexer = GGLLexer()
        self.parser: yacc.LRParser | None = None
        self._placeholder_parser: GGLParser | None = None

    def build(self, **kwargs: Any) -> None:
        """Build the lexer and parser tables."""
        self.lexer.build(debug=False, errorlog=yacc.NullLogger())
        kwargs.setdefault("debug", False)
        kwargs.setdefault("write_tables", False)
        kwargs.setdefault("errorlog", yacc.NullLogger())
        self.parser = yacc.yacc(module=self, start=self.start, **kwargs)

    def parse(self, data: str) -> Program:
        """Parse a complete program."""
        if self.parser is None:
            self.build()
        self.lexer.input("")
        result = self.parser.parse(data, lexer=self.lexer.lexer, tracking=True)  # type: ignore[union-attr]
        if result is None:
            return Program()
        return result

    def parse_expression(self, data: str) -> Expr:
        """Parse a single expression (used for string placeholders)."""
        if self._placeholder_parser is None:
            self._placeholder_parser = GGLParser(start="expression")
            self._placeholder_parser.build()
        sub = self._placeholder_parser
        sub.lexer.input("")
        result = sub.parser.parse(data, lexer=sub.lexer.lexer)  # type: ignore[union-attr]
        if result is None:
            raise SyntaxError(f"Empty placeholder in string: '{{{data}}}'")
        return result

    # ---- String literals and interpolation ----

    def _string_expr(self, raw: str, lineno: int) -> Expr:
        """Split a raw string body into literal text and {expr} placeholders."""
        parts: list[str | Expr] = []
        text: list[str] = []
        i = 0
        while i < len(raw):
            ch = raw[i]
            if ch == "\\" and i + 1 < len(raw):
                text.append(raw[i:i + 2])
                i += 2
                continue
            if ch == "{":
                if raw.startswith("{{", i):
                    text.append("{")
                    i += 2
                    continue
                close = raw.find("}", i + 1)
                if close < 0:
                    raise SyntaxError(f"Unterminated placeholder in string on line {lineno}: \"{raw}\"")
                if text:
                    parts.append(unescape("".join(text)))
                    text = []
                try:
                    parts.append(self.parse_expression(raw[i + 1:close]))
                except SyntaxError as exc:
                    raise SyntaxError(f"Invalid placeholder on line {lineno}: {exc}") from exc
                i = close + 1
                continue
            if ch == "}" and raw.startswith("}}", i):
                text.append("}")
                i += 2
                continue
            text.append(ch)
            i += 1
        if text:
            parts.append(unescape("".join(text)))
        if all(isinstance(part, str) for part in parts):
            return Literal(value="".join(parts))  # type: ignore[arg-type]
        return FormattedString(parts=parts)

    # ---- Program ----

    def p_program_graph(self, p: yacc.YaccProduction) -> None:
        """program : GRAPH IDENTIFIER LBRACE statements RBRACE"""
        p[0] = Program(statements=p[4], name=p[2])

    def p_program_graph_unnamed(self, p: yacc.YaccProduction) -> None:
        """program : GRAPH LBRACE statements RBRACE"""
        p[0] = Program(statements=p[3])

    def p_program_bare(self, p: yacc.YaccProduction) -> None:
        """program : statements"""
        p[0] = Program(statements=p[1])

    def p_statements_empty(self, p: yacc.YaccProduction) -> None:
        """statements : """
        p[0] = []

    def p_statements_multi(self, p: yacc.YaccProduction) -> None:
        """statements : statements statement"""
        if p[2] is not None:
            p[1].append(p[2])
        p[0] = p[1]

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : let_stmt
                     | for_stmt
                     | if_stmt
                     | node_decl
                     | edge_decl
                     | generate_stmt
                     | rule_def
                     | apply_stmt"""
        p[0] = p[1]

    def p_statement_empty(self, p: yacc.YaccProduction) -> None:
        """statement : SEMICOLON"""
        p[0] = None

    # ---- let / for / if ----

    def p_let_stmt(self, p: yacc.YaccProduction) -> None:
        """let_stmt : LET IDENTIFIER EQUALS expression SEMICOLON"""
        p[0] = LetStmt(name=p[2], value=p[4], line=p.lineno(1))

    def p_let_stmt_annotated(self, p: yacc.YaccProduction) -> None:
        """let_stmt : LET IDENTIFIER COLON IDENTIFIER EQUALS expression SEMICOLON"""
        p[0] = LetStmt(name=p[2], value=p[6], annotation=p[4], line=p.lineno(1))

    def p_for_stmt(self, p: yacc.YaccProduction) -> None:
        """for_stmt : FOR IDENTIFIER IN expression DOTDOT expression LBRACE statements RBRACE"""
        p[0] = ForStmt(variable=p[2], start=p[4], end=p[6], body=p[8], line=p.lineno(1))

    def p_if_stmt(self, p: yacc.YaccProduction) -> None:
        """if_stmt : IF expression LBRACE statements RBRACE"""
        p[0] = IfStmt(condition=p[2], body=p[4], line=p.lineno(1))

    def p_if_stmt_else(self, p: yacc.YaccProduction) -> None:
        """if_stmt : IF expression LBRACE statements RBRACE ELSE LBRACE statements RBRACE"""
        p[0] = IfStmt(condition=p[2], body=p[4], orelse=p[8], line=p.lineno(1))

    # ---- Node and edge declarations ----

    def p_node_decl(self, p: yacc.YaccProduction) -> None:
        """node_decl : NODE name opt_type opt_attrs SEMICOLON"""
        p[0] = NodeDecl(id=p[2], node_type=p[3], attributes=p[4], line=p.lineno(1))

    def p_opt_type(self, p: yacc.YaccProduction) -> None:
        """opt_type : COLON name"""
        p[0] = p[2]

    def p_opt_type_empty(self, p: yacc.YaccProduction) -> None:
        """opt_type : """
        p[0] = None

    def p_edge_decl_named(self, p: yacc.YaccProduction) -> None:
        """edge_decl : EDGE name COLON name edge_op name opt_attrs SEMICOLON"""
        p[0] = EdgeDecl(
            id=p[2], source=p[4], directed=p[5], target=p[6], attributes=p[7], line=p.lineno(1)
        )

    def p_edge_decl_colon(self, p: yacc.YaccProduction) -> None:
        """edge_decl : EDGE COLON name edge_op name opt_attrs SEMICOLON"""
        p[0] = EdgeDecl(source=p[3], directed=p[4], target=p[5], attributes=p[6], line=p.lineno(1))

    def p_edge_decl_bare(self, p: yacc.YaccProduction) -> None:
        """edge_decl : EDGE name edge_op name opt_attrs SEMICOLON"""
        p[0] = EdgeDecl(source=p[2], directed=p[3], target=p[4], attributes=p[5], line=p.lineno(1))

    def p_edge_op_directed(self, p: yacc.YaccProduction) -> None:
        """edge_op : ARROW"""
        p[0] = True

    def p_edge_op_undirected(self, p: yacc.YaccProduction) -> None:
        """edge_op : DASHDASH"""
        p[0] = False

    def p_name_identifier(self, p: yacc.YaccProduction) -> None:
        """name : IDENTIFIER"""
        p[0] = Identifier(name=p[1])

    def p_name_string(self, p: yacc.YaccProduction) -> None:
        """name : STRING"""
        p[0] = self._string_expr(p[1], p.lineno(1))

    # ---- Attributes: [key=value, ...] ----

    def p_opt_attrs(self, p: yacc.YaccProduction) -> None:
        """opt_attrs : LBRACKET attr_list RBRACKET"""
        p[0] = p[2]

    def p_opt_attrs_brackets(self, p: yacc.YaccProduction) -> None:
        """opt_attrs : LBRACKET RBRACKET"""
        p[0] = []

    def p_opt_attrs_empty(self, p: yacc.YaccProduction) -> None:
        """opt_attrs : """
        p[0] = []

    def p_attr_list_single(self, p: yacc.YaccProduction) -> None:
        """attr_list : attr"""
        p[0] = [p[1]]

    def p_attr_list_multi(self, p: yacc.YaccProduction) -> None:
        """attr_list : attr_list COMMA attr"""
        p[0] = p[1] + [p[3]]

    def p_attr(self, p: yacc.YaccProduction) -> None:
        """attr : IDENTIFIER EQUALS expression"""
        p[0] = (p[1], p[3])

    # ---- generate ----

    def p_generate_stmt(self, p: yacc.YaccProduction) -> None:
        """generate_stmt : GENERATE IDENTIFIER LBRACE gen_params RBRACE"""
        p[0] = GenerateStmt(name=p[2], params=p[4], line=p.lineno(1))

    def p_gen_params_empty(self, p: yacc.YaccProduction) -> None:
        """gen_params : """
        p[0] = []

    def p_gen_params_multi(self, p: yacc.YaccProduction) -> None:
        """gen_params : gen_params gen_param"""
        p[0] = p[1] + [p[2]]

    def p_gen_param(self, p: yacc.YaccProduction) -> None:
        """gen_param : IDENTIFIER COLON expression SEMICOLON"""
        p[0] = (p[1], p[3])

    # ---- rule / apply ----

    def p_rule_def(self, p: yacc.YaccProduction) -> None:
        """rule_def : RULE IDENTIFIER LBRACE LHS LBRACE pattern_items RBRACE RHS LBRACE pattern_items RBRACE RBRACE"""
        p[0] = RuleDef(name=p[2], lhs=p[6], rhs=p[10], line=p.lineno(1))

    def p_pattern_items_empty(self, p: yacc.YaccProduction) -> None:
        """pattern_items : """
        p[0] = PatternBlock()

    def p_pattern_items_node(self, p: yacc.YaccProduction) -> None:
        """pattern_items : pattern_items node_decl"""
        p[1].nodes.append(p[2])
        p[0] = p[1]

    def p_pattern_items_edge(self, p: yacc.YaccProduction) -> None:
        """pattern_items : pattern_items edge_decl"""
        p[1].edges.append(p[2])
        p[0] = p[1]

    def p_apply_stmt(self, p: yacc.YaccProduction) -> None:
        """apply_stmt : APPLY IDENTIFIER expression TIMES SEMICOLON"""
        p[0] = ApplyStmt(rule_name=p[2], count=p[3], line=p.lineno(1))

    # ---- Expressions ----

    def p_expression_binary(self, p: yacc.YaccProduction) -> None:
        """expression : expression PLUS expression
                      | expression MINUS expression
                      | expression STAR expression
                      | expression SLASH expression
                      | expression PERCENT expression
                      | expression EQEQ expression
                      | expression NEQ expression
                      | expression LT expression
                      | expression LE expression
                      | expression GT expression
                      | expression GE expression"""
        p[0] = BinaryOp(op=p[2], left=p[1], right=p[3])

    def p_expression_uminus(self, p: yacc.YaccProduction) -> None:
        """expression : MINUS expression %prec UMINUS"""
        operand = p[2]
        if isinstance(operand, Literal) and isinstance(operand.value, (int, float)) \
                and not isinstance(operand.value, bool):
            p[0] = Literal(value=-operand.value)
        else:
            p[0] = UnaryOp(op="-", operand=operand)

    def p_expression_paren(self, p: yacc.YaccProduction) -> None:
        """expression : LPAREN expression RPAREN"""
        p[0] = p[2]

    def p_expression_number(self, p: yacc.YaccProduction) -> None:
        """expression : INTEGER
                      | FLOAT"""
        p[0] = Literal(value=p[1])

    def p_expression_true(self, p: yacc.YaccProduction) -> None:
        """expression : TRUE"""
        p[0] = Literal(value=True)

    def p_expression_false(self, p: yacc.YaccProduction) -> None:
        """expression : FALSE"""
        p[0] = Literal(value=False)

    def p_expression_string(self, p: yacc.YaccProduction) -> None:
        """expression : STRING"""
        p[0] = self._string_expr(p[1], p.lineno(1))

    def p_expression_identifier(self, p: yacc.YaccProduction) -> None:
        """expression : IDENTIFIER"""
        p[0] = Identifier(name=p[1])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' on line {p.lineno} (position {p.lexpos})")
        raise SyntaxError("Syntax error at end of input")

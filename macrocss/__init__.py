from macrocss.macrocss_datatypes import (
    Scalar, Array, Scope, Unresolved, ComparisonError,
    get_variable, set_variable, bind_variable,
    parse_array_literal, to_number_if_valid,
)
from macrocss.macrocss_interpolate import interpolate
from macrocss.macrocss_interpreter import Evaluator
from macrocss.macrocss_nodes import Root, Rule, AtRule, Declaration, Comment
from macrocss.macrocss_parser import ParseError, parse
from macrocss.macrocss_printer import Printer
from macrocss.macrocss_runtime import (
    Options, Result, Diagnostic, ExecutionResult, Processor, load_options, process,
)

"""Sable: a small embeddable scripting language."""

from sable.sable_errors import *  # noqa: F401,F403
from sable.sable_values import *  # noqa: F401,F403
from sable.sable_scope import Binding, ScopeMap, make_object
from sable.sable_interpreter import Interpreter, run_expression, run_script
from sable.sable_runtime import ScriptRunner, ExecutionResult, SableHost, sable_api_method

__version__ = "0.1.0"

"""
loopguard - termination decisions for agent loops

Components:
- termination: strategies voting continue / terminate(reason) each turn
- state: LoopState snapshot the strategies read
- agent: TurnLimitedLoop executor and the AgentResult it returns
- callback: AgentCallback event contract
- config: LoopConfig loading (defaults.yaml < user YAML < overrides)

Usage:
    from loopguard import TurnLimitedLoop, load_loop_config

    loop = TurnLimitedLoop(runner, config=load_loop_config("loop.yaml"))
    result = loop.run("Fix the failing test")
    print(result.termination_reason, result.response)
"""

__version__ = "0.1.0"

# Lazy imports avoid an import cycle with evaluation
def __getattr__(name):
    if name in _LAZY_IMPORTS:
        module_name, attr = _LAZY_IMPORTS[name]
        import importlib
        return getattr(importlib.import_module(module_name), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

_LAZY_IMPORTS = {
    # Errors
    "HarnessError": ("loopguard.errors", "HarnessError"),
    "ConfigurationError": ("loopguard.errors", "ConfigurationError"),
    "JuryEvaluationError": ("loopguard.errors", "JuryEvaluationError"),
    # State
    "LoopState": ("loopguard.state.loop_state", "LoopState"),
    "TurnSnapshot": ("loopguard.state.loop_state", "TurnSnapshot"),
    # Termination
    "TerminationReason": ("loopguard.termination.protocol", "TerminationReason"),
    "TerminationResult": ("loopguard.termination.protocol", "TerminationResult"),
    "TerminationStrategy": ("loopguard.termination.protocol", "TerminationStrategy"),
    "all_of": ("loopguard.termination.combinators", "all_of"),
    "any_of": ("loopguard.termination.combinators", "any_of"),
    "JuryTerminationStrategy": ("loopguard.termination.jury", "JuryTerminationStrategy"),
    # Agent
    "AgentResult": ("loopguard.agent.result", "AgentResult"),
    "LoopRun": ("loopguard.agent.result", "LoopRun"),
    "TurnLimitedLoop": ("loopguard.agent.loop", "TurnLimitedLoop"),
    "TurnOutcome": ("loopguard.agent.loop", "TurnOutcome"),
    "TurnContext": ("loopguard.agent.loop", "TurnContext"),
    # Callback
    "AgentCallback": ("loopguard.callback.protocol", "AgentCallback"),
    "CompositeCallback": ("loopguard.callback.composite", "CompositeCallback"),
    "LoggingCallback": ("loopguard.callback.logging_callback", "LoggingCallback"),
    "Question": ("loopguard.callback.models", "Question"),
    "Option": ("loopguard.callback.models", "Option"),
    # Config
    "LoopConfig": ("loopguard.config.loader", "LoopConfig"),
    "load_loop_config": ("loopguard.config.loader", "load_loop_config"),
    "load_loop_config_async": ("loopguard.config.loader", "load_loop_config_async"),
}

__all__ = list(_LAZY_IMPORTS)

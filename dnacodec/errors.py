class DecoderError(Exception):
    "Base class for fatal decoding errors."


class NonDeterministicMachine(DecoderError):
    """
    The same state is reachable with two different pending input queues, so
    the machine is not input-deterministic under the output projection.
    """

    def __init__(self, state, queues):
        self.state = state
        self.queues = tuple(queues)
        super().__init__(
            f'state {state} has two possible input queues '
            f'({", ".join(repr(q) for q in self.queues)})'
        )


class NoUsableTransition(DecoderError):
    "No live state has a usable transition for `symbol`."

    def __init__(self, symbol, states=(), action='decode'):
        self.symbol = symbol
        self.states = tuple(states)
        msg = f"can't {action} {symbol!r}"
        if self.states:
            msg += f' from state(s) {", ".join(str(s) for s in self.states)}'
        super().__init__(msg)


class ViterbiError(DecoderError):
    "Defect detected while filling or tracing back a Viterbi matrix."

import logging
from collections import deque

import numpy as np

from dnacodec.errors import DecoderError, NonDeterministicMachine, NoUsableTransition
from dnacodec.symbols import BIT0, BIT1, EOF, SOF, control_index, is_control


logger = logging.getLogger(__name__)


def _queue_str(queue):
    return ''.join(queue) if queue else 'empty'


class Decoder:
    """
    Streaming inverse of an input-deterministic machine.

    The decoder keeps a set of hypotheses `state -> queue`, where the queue
    holds the input symbols read along the way into `state` that have not yet
    been written out.  Every observed output symbol advances all hypotheses;
    input symbols are written to `outs` as soon as every hypothesis agrees on
    them.

    `close()` must be called once at the end of the stream (or use the decoder
    as a context manager).
    """

    def __init__(self, machine, outs, logger=logger):
        self.machine = machine
        self.outs = outs
        self.logger = logger
        self.current = {machine.start: ()}
        self.expand()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            # a fatal error ends the stream; guessed queues are not written
            self.current = {}
        self.close()

    def __repr__(self):
        return f'{__class__.__name__}({self._format_current()})'

    def _format_current(self):
        return '{%s}' % ', '.join(
            f'{self.machine.name(s)}: {_queue_str(q)}' for s, q in self.current.items()
        )

    def close(self):
        """
        Flush the queue of the unique terminal hypothesis.  If the end of the
        stream is ambiguous, nothing is flushed and the candidates are
        reported and returned as `(state name, queue)` pairs.
        """
        unresolved = ()
        if self.current:
            self.expand()
            ends = [s for s in self.current if self.machine.state[s].is_end]
            if len(ends) == 1:
                self.flush(ends[0])
            elif len(ends) > 1:
                self.logger.warning('Decoder unresolved: %d possible end states', len(ends))
                for s in ends:
                    self.logger.warning('State %s: input queue %s',
                                        self.machine.name(s), _queue_str(self.current[s]))
                unresolved = tuple((self.machine.name(s), ''.join(self.current[s])) for s in ends)
            elif len(self.current) > 1:
                self.logger.warning('Decoder unresolved: %d possible states', len(self.current))
                self.show_queue()
                unresolved = tuple((self.machine.name(s), ''.join(q)) for s, q in self.current.items())
            self.current = {}
        return unresolved

    def show_queue(self):
        for s, q in self.current.items():
            self.logger.warning('State %s: input queue %s', self.machine.name(s), _queue_str(q))

    def expand(self):
        """
        Follow usable transitions that produce no output from every live
        hypothesis until no new state is found.  Only terminal and
        output-emitting states are kept.
        """
        seen = dict(self.current)
        worklist = deque(self.current.items())
        while worklist:
            state, queue = worklist.popleft()
            for t in self.machine.state[state].trans:
                if not (t.is_usable() and t.output_empty()):
                    continue
                next_queue = queue if t.input_empty() else queue + (t.input,)
                if t.dest in seen:
                    if seen[t.dest] != next_queue:
                        raise NonDeterministicMachine(
                            self.machine.name(t.dest),
                            (''.join(seen[t.dest]), ''.join(next_queue)),
                        )
                else:
                    self.logger.debug('Transition %s -> %s: input queue %s',
                                      self.machine.name(state),
                                      self.machine.name(t.dest),
                                      _queue_str(next_queue))
                    seen[t.dest] = next_queue
                    worklist.append((t.dest, next_queue))
        self.current = {
            s: q for s, q in seen.items()
            if self.machine.state[s].is_end or self.machine.state[s].emits_output
        }

    def flush(self, state):
        queue = self.current[state]
        if queue:
            self.logger.debug('Flushing input queue: %s', ''.join(queue))
            self.outs.write(''.join(queue))
            self.current[state] = ()

    def decode_symbol(self, sym):
        try:
            self._decode_symbol(sym)
        except DecoderError:
            # nothing more is written once decoding has failed
            self.current = {}
            raise

    def _decode_symbol(self, sym):
        self.logger.debug('Decoding %s', sym)
        next_current = {}
        for state, queue in self.current.items():
            for t in self.machine.state[state].trans:
                if not (t.is_usable() and t.output == sym):
                    continue
                next_queue = queue if t.input_empty() else queue + (t.input,)
                if next_current.get(t.dest, next_queue) != next_queue:
                    raise NonDeterministicMachine(
                        self.machine.name(t.dest),
                        (''.join(next_current[t.dest]), ''.join(next_queue)),
                    )
                next_current[t.dest] = next_queue
                self.logger.debug('Transition %s -> %s: input queue %s, output %s',
                                  self.machine.name(state),
                                  self.machine.name(t.dest),
                                  _queue_str(next_queue), sym)
        if not next_current:
            raise NoUsableTransition(sym, [self.machine.name(s) for s in self.current])
        self.current = next_current
        self.expand()
        if len(self.current) == 1:
            [state] = self.current
            if self.machine.state[state].exits_with_input:
                self.flush(state)
        else:
            self.shift_resolved_symbols()

    def shift_resolved_symbols(self):
        "Write out leading input symbols that every hypothesis agrees on."
        while self.current:
            fronts = {q[0] if q else None for q in self.current.values()}
            if len(fronts) != 1 or None in fronts:
                break
            [c] = fronts
            self.logger.debug("All input queues have '%s' as first symbol; shifting", c)
            self.outs.write(c)
            self.current = {s: q[1:] for s, q in self.current.items()}

    def decode_string(self, seq):
        for c in seq:
            self.decode_symbol(c.upper())


class BinaryWriter:
    """
    Packs a stream of decoded bit symbols into bytes written to the binary
    stream `outs`.  With `msb0=False` the first bit of each byte is its least
    significant bit.
    """

    def __init__(self, outs, msb0=False, logger=logger):
        self.outs = outs
        self.msb0 = msb0
        self.logger = logger
        self.outbuf = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        "Discard (and report) a partial trailing byte."
        if self.outbuf:
            bits = self.outbuf if self.msb0 else self.outbuf[::-1]
            n = len(self.outbuf)
            self.logger.warning('%d bit%s (%s) remaining on output',
                                n, '' if n == 1 else 's', ''.join(str(int(b)) for b in bits))
            self.outbuf = []

    def flush(self):
        if not self.outbuf:
            return
        c = int(np.packbits(np.array(self.outbuf, dtype=np.uint8),
                            bitorder='big' if self.msb0 else 'little')[0])
        self.logger.debug("Decoding %r (\\x%02x)", chr(c), c)
        self.outs.write(bytes([c]))
        self.outbuf = []

    def write(self, s):
        for c in s:
            if c == BIT0 or c == BIT1:
                self.outbuf.append(c == BIT1)
                if len(self.outbuf) == 8:
                    self.flush()
            elif is_control(c):
                self.logger.warning("Ignoring control character #%d ('%s') in decoder", control_index(c), c)
            elif c == SOF:
                self.logger.info("Ignoring start-of-file character '%s' in decoder", c)
            elif c == EOF:
                self.logger.info("Ignoring end-of-file character '%s' in decoder", c)
            else:
                self.logger.warning("Ignoring unknown character %r (\\x%02x) in decoder", c, ord(c))

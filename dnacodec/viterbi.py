"""
Maximum-likelihood decoding of a mutated base sequence.

The Viterbi matrix aligns the observed sequence against paths through the
machine, composed with the mutation channel of `dnacodec.mutator`.  Each cell
is indexed by (machine state, number of observed symbols consumed, channel
sub-state), where the sub-state is one of

  S     plain: the last emitted base was observed (or we are at the start),
  D     deletion: the last emitted base was deleted,
  T(k)  tandem duplication: the last observed symbol copies the base `k`
        positions back in the state's left context.

Cells hold log-probabilities; alternatives are combined by max.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass

import numpy as np

from dnacodec.errors import ViterbiError
from dnacodec.mutator import MutatorScores, log
from dnacodec.symbols import is_meta


logger = logging.getLogger(__name__)


class InputModel:
    """
    Prior over input symbols.  Data symbols share `1 - control_prob` equally
    and meta symbols (start/end of file, controls) share `control_prob`; if
    the alphabet has no meta symbols, data symbols get all the mass.
    """

    def __init__(self, input_alphabet='01', control_prob=0.0):
        if not 0 <= control_prob < 1:
            raise ValueError(f'control_prob must be in [0, 1), got {control_prob}')
        symbols = sorted(set(input_alphabet))
        data = [c for c in symbols if not is_meta(c)]
        meta = [c for c in symbols if is_meta(c)]
        if not data:
            raise ValueError(f'no data symbols in input alphabet {input_alphabet!r}')
        data_prob = (1 - control_prob) if meta else 1.0
        self.sym_prob = {c: data_prob / len(data) for c in data}
        self.sym_prob.update({c: control_prob / len(meta) for c in meta})

    @classmethod
    def from_machine(cls, machine, control_prob=0.0):
        return cls(''.join(machine.input_alphabet), control_prob)

    def __repr__(self):
        return f'{__class__.__name__}({self.sym_prob})'

    def prob(self, sym):
        return self.sym_prob.get(sym, 0.0)

    def logp(self, sym):
        return log(self.prob(sym))


@dataclass(frozen=True)
class IncomingTransScore:
    src: int
    score: float
    input: str
    base: str


class StateScores:

    def __init__(self, left_context=''):
        self.left_context = left_context
        self.emit = []
        self.null = []

    @property
    def base(self):
        return self.left_context[-1]


def _common_suffix(x, y):
    n = 0
    while n < min(len(x), len(y)) and x[-1 - n] == y[-1 - n]:
        n += 1
    return x[len(x) - n:]


class MachineScores:
    """
    Incoming usable transitions of every state, scored by the transition
    probability times the prior of the input symbol it reads, split into
    those that emit a base (`emit`) and those that do not (`null`).

    The left context of a state is the longest base string that every path
    from the start state into it ends with.

    Scores include the input prior, so the log-likelihood of a noiseless
    alignment is the sum of the transition log-probabilities plus the
    log-prior of every input symbol read, not the transition log-probabilities
    alone.
    """

    def __init__(self, machine, input_model):
        self.machine = machine
        self.input_model = input_model
        self.state_scores = [StateScores() for _ in range(machine.n_states)]
        for src, ms in enumerate(machine.state):
            for t in ms.trans:
                if not t.is_usable():
                    continue
                if not 0 <= t.prob <= 1:
                    raise ValueError(
                        f'transition {ms.name} -> {machine.name(t.dest)} has probability {t.prob}'
                    )
                score = log(t.prob)
                if not t.input_empty():
                    score += input_model.logp(t.input)
                its = IncomingTransScore(src, score, t.input, t.output)
                ss = self.state_scores[t.dest]
                (ss.null if t.output_empty() else ss.emit).append(its)
        for ss, context in zip(self.state_scores, self._left_contexts()):
            ss.left_context = context or ''

    def _left_contexts(self):
        context = [None] * self.machine.n_states
        context[self.machine.start] = ''
        worklist = [self.machine.start]
        while worklist:
            src = worklist.pop()
            for t in self.machine.state[src].trans:
                if not t.is_usable():
                    continue
                x = context[src] + t.output
                if context[t.dest] is not None:
                    x = _common_suffix(context[t.dest], x)
                if x != context[t.dest]:
                    context[t.dest] = x
                    worklist.append(t.dest)
        return context


TracebackStep = namedtuple('TracebackStep', 'state pos mut input')


class ViterbiMatrix:
    """
    Dense Viterbi matrix for the observed sequence `seq`.  The matrix is
    filled on construction; `loglike` is the score of the best alignment
    ending in a terminal state and `traceback()` returns the input symbols
    read along it.

    Among equally good predecessors each cell keeps the first one in the
    order: plain predecessors, deletion predecessors, then tandem
    duplication (lowest offset first); within a group, incoming transitions
    are taken in the order of their source state.  Every sweep over a
    position picks the backpointers again from the full candidate list, so
    the order holds whatever the state numbering.
    """

    S = 0
    D = 1

    def __init__(self, machine, input_model, mutator_params, seq, machine_scores=None, logger=logger):
        self.machine = machine
        self.input_model = input_model
        self.mutator_params = mutator_params
        self.machine_scores = machine_scores or MachineScores(machine, input_model)
        self.mutator_scores = MutatorScores(mutator_params)
        self.logger = logger

        alphabet = mutator_params.alphabet
        self.seq = self.tokenize(seq, alphabet)
        self._base_index = {c: i for i, c in enumerate(alphabet)}
        bad = machine.output_alphabet - set(alphabet)
        if bad:
            raise ValueError(f'machine emits symbols outside the channel alphabet: {sorted(bad)}')

        self.max_dup_len = mutator_params.max_dup_len
        self.n_states = machine.n_states
        self.seq_len = len(self.seq)

        n = self.n_cells(machine, mutator_params, self.seq)
        self.cell = np.full(n, -np.inf)
        self._back = np.full(n, -1, dtype=np.int64)
        self._via = [None] * n

        self._fill()

        self.loglike = -np.inf
        self._final = None
        for s in range(self.n_states):
            if not machine.state[s].is_end:
                continue
            for mut in range(self.max_dup_len + 2):
                idx = self.cell_index(s, self.seq_len, mut)
                if self.cell[idx] > self.loglike:
                    self.loglike = self.cell[idx]
                    self._final = idx
        self.logger.debug('Viterbi log-likelihood: %g', self.loglike)

    @staticmethod
    def tokenize(seq, alphabet):
        tok = []
        for c in seq.upper():
            if c not in alphabet:
                raise ValueError(f'symbol {c!r} not in alphabet {alphabet!r}')
            tok.append(alphabet.index(c))
        return tuple(tok)

    @staticmethod
    def n_cells(machine, mutator_params, seq):
        return (mutator_params.max_dup_len + 2) * machine.n_states * (len(seq) + 1)

    #___________________________________________________________________________
    # Indexing

    def t_mut(self, dup_idx):
        return 2 + dup_idx

    def is_t_mut(self, mut):
        return self.t_mut(0) <= mut <= self.t_mut(self.max_dup_len - 1)

    def cell_index(self, state, pos, mut):
        return (self.max_dup_len + 2) * (pos * self.n_states + state) + mut

    def cell_coords(self, idx):
        "Inverse of `cell_index`: (state, pos, mut)."
        rest, mut = divmod(int(idx), self.max_dup_len + 2)
        pos, state = divmod(rest, self.n_states)
        return state, pos, mut

    def s_cell(self, state, pos):
        return self.cell[self.cell_index(state, pos, self.S)]

    def d_cell(self, state, pos):
        return self.cell[self.cell_index(state, pos, self.D)]

    def t_cell(self, state, pos, dup_idx):
        return self.cell[self.cell_index(state, pos, self.t_mut(dup_idx))]

    def max_dup_len_at(self, ss):
        return min(self.max_dup_len, len(ss.left_context))

    def tan_dup_base(self, ss, dup_idx):
        return ss.left_context[len(ss.left_context) - 1 - dup_idx]

    #___________________________________________________________________________
    # Fill

    def _s_candidates(self, state, pos):
        ss = self.machine_scores.state_scores[state]
        sc = self.mutator_scores
        S, D = self.S, self.D
        if state == self.machine.start and pos == 0:
            yield 0.0, -1, None
        if pos > 0:
            sub = sc.sub[:, self.seq[pos - 1]]
            for t in ss.emit:
                i = self.cell_index(t.src, pos - 1, S)
                yield (self.cell[i] + sc.no_tan_dup + sc.no_del_open + t.score
                       + sub[self._base_index[t.base]]), i, t
        for t in ss.null:
            i = self.cell_index(t.src, pos, S)
            yield self.cell[i] + t.score, i, t
        if pos > 0:
            for t in ss.emit:
                i = self.cell_index(t.src, pos - 1, D)
                yield self.cell[i] + sc.no_del_ext + t.score + sub[self._base_index[t.base]], i, t
            if self.max_dup_len_at(ss) > 0:
                i = self.cell_index(state, pos, self.t_mut(0))
                yield self.cell[i], i, None

    def _d_candidates(self, state, pos):
        ss = self.machine_scores.state_scores[state]
        sc = self.mutator_scores
        for t in ss.emit:
            i = self.cell_index(t.src, pos, self.S)
            yield self.cell[i] + sc.no_tan_dup + sc.del_open + t.score, i, t
        for t in ss.null:
            i = self.cell_index(t.src, pos, self.D)
            yield self.cell[i] + t.score, i, t
        for t in ss.emit:
            i = self.cell_index(t.src, pos, self.D)
            yield self.cell[i] + sc.del_ext + t.score, i, t

    def _t_candidates(self, state, pos, dup_idx):
        ss = self.machine_scores.state_scores[state]
        sc = self.mutator_scores
        sub = sc.sub[self._base_index[self.tan_dup_base(ss, dup_idx)], self.seq[pos - 1]]
        i = self.cell_index(state, pos - 1, self.S)
        yield self.cell[i] + sc.tan_dup + sc.len[dup_idx] + sub, i, None
        if dup_idx + 1 < self.max_dup_len_at(ss):
            i = self.cell_index(state, pos - 1, self.t_mut(dup_idx + 1))
            yield self.cell[i] + sub, i, None

    def _update(self, idx, candidates):
        "Set cell `idx` to its first best candidate; return True if its score changed."
        best, back, via = -np.inf, -1, None
        for score, i, t in candidates:
            if score > best:
                best, back, via = score, i, t
        changed = best != self.cell[idx]
        self.cell[idx] = best
        self._back[idx] = back
        self._via[idx] = via
        return changed

    def _fill(self):
        max_sweeps = 2 * self.n_states + 2
        for pos in range(self.seq_len + 1):
            if pos > 0:
                for state, ss in enumerate(self.machine_scores.state_scores):
                    for k in range(self.max_dup_len_at(ss)):
                        self._update(self.cell_index(state, pos, self.t_mut(k)),
                                     self._t_candidates(state, pos, k))
            # Null transitions and deletions do not advance `pos`, so cells at
            # the same position may depend on each other in any state order.
            for sweep in range(max_sweeps):
                changed = False
                for state in range(self.n_states):
                    changed |= self._update(self.cell_index(state, pos, self.S),
                                            self._s_candidates(state, pos))
                    changed |= self._update(self.cell_index(state, pos, self.D),
                                            self._d_candidates(state, pos))
                if not changed:
                    break
            else:
                raise ViterbiError(f'scores at position {pos} did not converge after {max_sweeps} sweeps')
            self.logger.debug('Filled position %d in %d sweep(s)', pos, sweep + 1)

    #___________________________________________________________________________
    # Traceback

    def traceback_steps(self):
        "Cells along the best alignment, in forward order."
        if self._final is None:
            raise ViterbiError('no alignment of the sequence ends in a terminal state')
        start = self.cell_index(self.machine.start, 0, self.S)
        steps = []
        seen = set()
        idx = self._final
        while True:
            if idx in seen:
                raise ViterbiError(f'traceback revisits cell {self.cell_coords(idx)}')
            seen.add(idx)
            t = self._via[idx]
            state, pos, mut = self.cell_coords(idx)
            steps.append(TracebackStep(state, pos, mut, t.input if t is not None else ''))
            back = int(self._back[idx])
            if back < 0:
                if idx != start:
                    raise ViterbiError(f'no predecessor for cell {self.cell_coords(idx)}')
                break
            idx = back
        steps.reverse()
        return steps

    def traceback(self):
        return ''.join(step.input for step in self.traceback_steps())

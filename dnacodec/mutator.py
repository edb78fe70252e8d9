"""
Mutation channel between the bases a machine emits and the bases observed.

Each emitted base is either deleted (with probability `p_del_open`, or
`p_del_ext` right after another deletion) or observed, possibly substituted.
After an observed base, a tandem duplication of the last `L` emitted bases
occurs with probability `p_tan_dup`, where `L - 1` is drawn from `p_len`; a
duplication may be followed by another one.
"""

from dataclasses import dataclass

import numpy as np


def log(p):
    "Natural log that maps 0 to -inf quietly."
    with np.errstate(divide='ignore'):
        return np.log(p)


@dataclass(frozen=True)
class MutatorParams:
    alphabet: str = 'ACGT'
    p_sub: float = 0.0
    p_del_open: float = 0.0
    p_del_ext: float = 0.0
    p_tan_dup: float = 0.0
    p_len: tuple = (1.0,)

    def __post_init__(self):
        object.__setattr__(self, 'p_len', tuple(float(p) for p in self.p_len))
        if len(set(self.alphabet)) != len(self.alphabet) or len(self.alphabet) < 2:
            raise ValueError(f'alphabet must have at least two distinct symbols: {self.alphabet!r}')
        for name in ('p_sub', 'p_del_open', 'p_del_ext', 'p_tan_dup'):
            p = getattr(self, name)
            if not 0 <= p <= 1:
                raise ValueError(f'{name} must be a probability, got {p}')
        if self.p_del_ext == 1:
            raise ValueError('p_del_ext must be less than 1')
        if self.p_tan_dup == 1:
            raise ValueError('p_tan_dup must be less than 1')
        if not self.p_len or any(p < 0 for p in self.p_len) or not np.isclose(sum(self.p_len), 1):
            raise ValueError(f'p_len must be a distribution over duplication lengths, got {self.p_len}')

    @classmethod
    def uniform(cls, max_dup_len, **kwargs):
        "Duplication lengths 1..`max_dup_len` equally likely."
        return cls(p_len=(1 / max_dup_len,) * max_dup_len, **kwargs)

    @property
    def max_dup_len(self):
        return len(self.p_len)

    def sub_matrix(self):
        "`P[i, j]`: probability of observing `alphabet[j]` for emitted `alphabet[i]`."
        K = len(self.alphabet)
        P = np.full((K, K), self.p_sub / (K - 1))
        np.fill_diagonal(P, 1 - self.p_sub)
        return P

    def _substitute(self, base, rng):
        i = self.alphabet.index(base)
        return self.alphabet[rng.choice(len(self.alphabet), p=self.sub_matrix()[i])]

    def mutate(self, seq, rng=None):
        "Sample an observed sequence for the emitted sequence `seq`."
        rng = np.random.default_rng(rng)
        seq = seq.upper()
        out = []
        deleted = False
        for i, base in enumerate(seq):
            if rng.random() < (self.p_del_ext if deleted else self.p_del_open):
                deleted = True
                continue
            deleted = False
            out.append(self._substitute(base, rng))
            while rng.random() < self.p_tan_dup:
                length = 1 + rng.choice(self.max_dup_len, p=self.p_len)
                if length > i + 1:
                    break
                out.extend(self._substitute(b, rng) for b in seq[i + 1 - length:i + 1])
        return ''.join(out)


class MutatorScores:
    "Log-probabilities of the channel events in `MutatorParams`."

    def __init__(self, params):
        self.params = params
        self.sub = log(params.sub_matrix())
        self.del_open = log(params.p_del_open)
        self.no_del_open = log(1 - params.p_del_open)
        self.del_ext = log(params.p_del_ext)
        self.no_del_ext = log(1 - params.p_del_ext)
        self.tan_dup = log(params.p_tan_dup)
        self.no_tan_dup = log(1 - params.p_tan_dup)
        self.len = log(np.array(params.p_len))

import html
from collections import defaultdict
from dataclasses import dataclass, field

from arsenal import Integerizer
from graphviz import Digraph

from dnacodec.symbols import EPSILON, is_usable


@dataclass(frozen=True)
class MachineTransition:
    input: str
    output: str
    dest: int
    prob: float = 1.0

    def input_empty(self):
        return self.input == EPSILON

    def output_empty(self):
        return self.output == EPSILON

    def is_usable(self):
        return is_usable(self.input)

    def __str__(self):
        return f'{self.input or "ε"}:{self.output or "ε"} -> {self.dest}'


@dataclass
class MachineState:
    name: object
    trans: list = field(default_factory=list)
    is_end: bool = False

    @property
    def emits_output(self):
        return any(not t.output_empty() for t in self.trans)

    @property
    def exits_with_input(self):
        return any(not t.input_empty() for t in self.trans)


class Machine:
    """
    Transducer from input symbols (bits and meta symbols) to output symbols
    (bases).  States are named by arbitrary hashable objects, which are
    interned to dense integer ids in order of first appearance; transitions
    keep the order in which they were added.
    """

    def __init__(self, start=None, arcs=(), stop=()):
        self._index = Integerizer()
        self.state = []
        self.start = None
        if start is not None: self.add_start(start)
        for i, a, b, j, *p in arcs: self.add_arc(i, a, b, j, *p)
        for i in stop: self.add_stop(i)

    def __repr__(self):
        return f'{__class__.__name__}({self.n_states} states)'

    def __str__(self):
        output = ['{']
        for s, ms in enumerate(self.state):
            output.append(f'  {ms.name} \t\t({s == self.start}, {ms.is_end})')
            for t in ms.trans:
                output.append(f'    {t.input or "ε"}:{t.output or "ε"} / {t.prob:g}: {self.state[t.dest].name}')
        output.append('}')
        return '\n'.join(output)

    @property
    def n_states(self):
        return len(self.state)

    def add_state(self, name):
        "Return the id of state `name`, creating it if needed."
        s = self._index(name)
        if s == len(self.state):
            self.state.append(MachineState(name))
            if self.start is None:
                self.start = s
        return s

    def index(self, name):
        if name not in self._index:
            raise KeyError(name)
        return self._index(name)

    def name(self, s):
        return self.state[s].name

    def add_arc(self, i, a, b, j, prob=1.0):
        src = self.add_state(i)
        dest = self.add_state(j)
        self.state[src].trans.append(MachineTransition(a, b, dest, prob))
        return self

    def add_start(self, q):
        self.start = self.add_state(q)
        return self

    def add_stop(self, q):
        self.state[self.add_state(q)].is_end = True
        return self

    @property
    def input_alphabet(self):
        return {t.input for ms in self.state for t in ms.trans} - {EPSILON}

    @property
    def output_alphabet(self):
        return {t.output for ms in self.state for t in ms.trans} - {EPSILON}

    def _repr_mimebundle_(self, *args, **kwargs):
        return self.graphviz()._repr_mimebundle_(*args, **kwargs)

    def graphviz(self, fmt_node=lambda x: x):

        g = Digraph(
            graph_attr=dict(rankdir='LR'),
            node_attr=dict(
                fontname='Monospace',
                fontsize='8',
                height='.05', width='.05',
                margin="0.055,0.042",
                shape='box',
                style='rounded',
            ),
            edge_attr=dict(
                arrowsize='0.3',
                fontname='Monospace',
                fontsize='8'
            ),
        )

        if self.start is not None:
            g.node('<start>', label='', shape='point', height='0', width='0')
            g.edge('<start>', str(self.start), label='')

        for s, ms in enumerate(self.state):
            g.node(str(s), label=html.escape(str(fmt_node(ms.name))),
                   peripheries='2' if ms.is_end else '1')

        # Collect parallel-edge labels by (i, j)
        by_pair = defaultdict(list)
        for s, ms in enumerate(self.state):
            for t in ms.trans:
                lbl = f'{t.input or "ε"}:{t.output or "ε"}'
                if t.prob != 1:
                    lbl += f'/{t.prob:g}'
                by_pair[str(s), str(t.dest)].append(html.escape(lbl))

        for (u, v), labels in by_pair.items():
            g.edge(u, v, label='\n'.join(sorted(labels)))

        return g

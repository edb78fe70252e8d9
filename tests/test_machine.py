import pytest

from dnacodec import examples
from dnacodec.machine import Machine
from dnacodec.symbols import EOF, EPSILON


def test_interning():
    m = Machine()
    m.add_arc('a', '0', 'A', 'b')
    m.add_arc('b', '1', 'C', 'a')
    m.add_arc('b', EPSILON, 'G', ('c', 1))
    assert [m.name(s) for s in range(m.n_states)] == ['a', 'b', ('c', 1)]
    assert m.index(('c', 1)) == 2
    assert m.start == m.index('a')
    [t] = m.state[m.index('a')].trans
    assert (t.input, t.output, t.dest, t.prob) == ('0', 'A', 1, 1.0)


def test_unknown_state():
    m = examples.rotating_code()
    n = m.n_states
    with pytest.raises(KeyError):
        m.index('nope')
    assert m.n_states == n


def test_constructor():
    m = Machine(start='S', arcs=[('S', '0', 'A', 'E', 0.5), ('S', '1', 'C', 'E')], stop=['E'])
    assert m.start == 0
    assert m.state[m.index('E')].is_end
    assert not m.state[m.index('S')].is_end
    assert [t.prob for t in m.state[0].trans] == [0.5, 1.0]
    assert [(t.input, t.output, t.dest) for t in m.state[0].trans] == [('0', 'A', 1), ('1', 'C', 1)]


def test_state_flags():
    m = examples.two_bits_per_base()
    S, S0 = m.state[m.index('S')], m.state[m.index('S0')]
    assert S.exits_with_input and not S.emits_output
    assert S0.exits_with_input and S0.emits_output

    m = examples.rotating_code_with_eof()
    eof = m.state[m.index('eof')]
    assert eof.emits_output and not eof.exits_with_input
    assert not m.state[m.index('end')].trans


def test_alphabets():
    m = examples.rotating_code_with_eof()
    assert m.input_alphabet == {'0', '1', EOF}
    assert m.output_alphabet == set('ACGT')


def test_str():
    m = Machine(start='S', arcs=[('S', '0', 'A', 'E', 0.5), ('S', EPSILON, 'C', 'E')], stop=['E'])
    text = str(m)
    assert '0:A / 0.5: E' in text
    assert 'ε:C / 1: E' in text
    assert repr(m) == 'Machine(2 states)'


def test_graphviz():
    m = Machine(start='S', arcs=[('S', '0', 'A', 'E', 0.5), ('S', EPSILON, 'C', 'E')], stop=['E'])
    src = m.graphviz().source
    assert '0:A/0.5' in src
    assert 'ε:C' in src
    assert 'peripheries=2' in src

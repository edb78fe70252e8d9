import io
import logging

import pytest

from dnacodec import examples
from dnacodec.encoder import Encoder, bits_from_bytes
from dnacodec.errors import DecoderError, NoUsableTransition
from dnacodec.machine import Machine
from dnacodec.symbols import EPSILON


def encode(machine, bits):
    out = io.StringIO()
    with Encoder(machine, out) as e:
        e.encode_string(bits)
    return out.getvalue()


@pytest.mark.parametrize('msb0, expect', [(False, '10101010'), (True, '01010101')])
def test_bits_from_bytes(msb0, expect):
    assert bits_from_bytes(b'\x55', msb0=msb0) == expect


def test_bits_from_several_bytes():
    assert bits_from_bytes(b'\x01\x80') == '10000000' '00000001'
    assert bits_from_bytes(b'') == ''


def test_two_bits_per_base():
    assert encode(examples.two_bits_per_base(), '00011011') == 'ACGT'


def test_rotating_code():
    assert encode(examples.rotating_code(), '0000') == 'CGTA'
    assert encode(examples.rotating_code(), '1111') == 'GAGA'


def test_eof_drains_silent_transitions():
    assert encode(examples.rotating_code_with_eof(), '01$') == 'CTTT'


def test_most_probable_silent_transition():
    m = Machine()
    m.add_start('S')
    m.add_arc('S', EPSILON, 'A', 'E', 0.3)
    m.add_arc('S', EPSILON, 'C', 'E', 0.7)
    m.add_stop('E')
    assert encode(m, '') == 'C'


def test_close_drains():
    m = Machine()
    m.add_start('S')
    m.add_arc('S', '0', 'A', 'S')
    m.add_arc('S', EPSILON, 'C', 'E')
    m.add_stop('E')
    assert encode(m, '00') == 'AAC'


def test_bytes():
    out = io.StringIO()
    with Encoder(examples.two_bits_per_base(), out) as e:
        e.encode_bytes(b'\x1b')
    # bits 1,1,0,1,1,0,0,0
    assert out.getvalue() == 'TCGA'


def test_unusable_symbol():
    e = Encoder(examples.two_bits_per_base(), io.StringIO())
    with pytest.raises(NoUsableTransition) as err:
        e.encode_symbol('2')
    assert str(err.value) == "can't encode '2' from state(s) S"


def test_silent_cycle():
    m = Machine()
    m.add_start('S')
    m.add_arc('S', EPSILON, 'A', 'X')
    m.add_arc('X', EPSILON, 'C', 'S')
    with pytest.raises(DecoderError):
        Encoder(m, io.StringIO())


def test_non_terminal_warning(caplog):
    encode(examples.two_bits_per_base(), '011')
    [record] = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert record.getMessage() == 'Encoder stopped in non-terminal state S1'


def test_no_drain_after_error():
    m = Machine()
    m.add_start('S')
    m.add_arc('S', '0', 'A', 'S')
    m.add_arc('S', EPSILON, 'C', 'E')
    m.add_stop('E')
    out = io.StringIO()
    with pytest.raises(NoUsableTransition):
        with Encoder(m, out) as e:
            e.encode_string('01')
    assert out.getvalue() == 'A'

import io
import logging

import pytest

from dnacodec.decoder import BinaryWriter


def pack(bits, **kwargs):
    out = io.BytesIO()
    with BinaryWriter(out, **kwargs) as w:
        w.write(bits)
    return out.getvalue()


@pytest.mark.parametrize('msb0, expect', [(False, b'\x55'), (True, b'\xaa')])
def test_bit_order(msb0, expect):
    assert pack('10101010', msb0=msb0) == expect


def test_first_bit_position():
    assert pack('10000000') == b'\x01'
    assert pack('10000000', msb0=True) == b'\x80'


def test_several_bytes():
    assert pack('00010010' '11111111' '00000000') == b'\x48\xff\x00'


def test_bytes_written_as_soon_as_complete():
    out = io.BytesIO()
    w = BinaryWriter(out)
    w.write('1111')
    assert out.getvalue() == b''
    w.write('0000')
    assert out.getvalue() == b'\x0f'
    w.close()


def test_partial_byte_discarded(caplog):
    assert pack('11111111' '110') == b'\xff'
    [record] = [r for r in caplog.records if r.levelno == logging.WARNING]
    # reported most significant bit first
    assert record.getMessage() == '3 bits (011) remaining on output'


def test_single_leftover_bit(caplog):
    assert pack('1', msb0=True) == b''
    assert '1 bit (1) remaining on output' in caplog.text


def test_close_twice(caplog):
    out = io.BytesIO()
    w = BinaryWriter(out)
    w.write('1')
    w.close()
    w.close()
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1


def test_control_ignored(caplog):
    assert pack('1010B1010') == b'\x55'
    assert "Ignoring control character #1 ('B') in decoder" in caplog.text


def test_file_markers_ignored(caplog):
    caplog.set_level(logging.INFO, logger='dnacodec.decoder')
    assert pack('^10101010$') == b'\x55'
    infos = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert infos == [
        "Ignoring start-of-file character '^' in decoder",
        "Ignoring end-of-file character '$' in decoder",
    ]


def test_unknown_ignored(caplog):
    assert pack('1010?1010') == b'\x55'
    assert "Ignoring unknown character '?' (\\x3f) in decoder" in caplog.text


def test_flush_empty_buffer():
    out = io.BytesIO()
    w = BinaryWriter(out)
    w.flush()
    w.write('11110000')
    w.flush()
    assert out.getvalue() == b'\x0f'

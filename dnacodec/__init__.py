from dnacodec.symbols import EPSILON, BIT0, BIT1, SOF, EOF
from dnacodec.errors import DecoderError, NonDeterministicMachine, NoUsableTransition, ViterbiError
from dnacodec.machine import Machine, MachineState, MachineTransition
from dnacodec.decoder import Decoder, BinaryWriter
from dnacodec.encoder import Encoder, bits_from_bytes
from dnacodec.mutator import MutatorParams, MutatorScores
from dnacodec.viterbi import InputModel, MachineScores, ViterbiMatrix
from dnacodec import examples

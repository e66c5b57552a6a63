"""CNF encoding of SHA-0 using PySAT for preimage/collision experiments.

This module builds a SAT instance that models the SHA-0 compression function
over one or more 512-bit blocks. It supports:
  - fixing some or all input bits,
  - optionally constraining the final digest,
  - running a configurable number of rounds,
then asks a SAT solver to find a satisfying assignment.

Bit vectors are lists of SAT variable ids, most significant bit first. SHA-0
reads its message words big-endian, so a word's bits are simply 32
consecutive message bits.
"""
import logging
from threading import Timer

from pysat.solvers import Solver

from sha0 import SHA0, SHA0State, BlockAlignmentError, BLOCK_SIZE, DIGEST_SIZE

logger = logging.getLogger(__name__)


class SHA0Collider:
    """Builder that encodes SHA-0 as CNF and solves it with a SAT solver.

    Parameters
    - input_bytes: bytes or None. If provided, must be padded to a multiple of
                   64 bytes. Those bytes are constrained into the instance.
                   None gives a single fully unconstrained block.
    - free_input_bits: iterable of bit indices (bit 0 is the MSB of byte 0).
                   These bits are left unconstrained so the solver can search
                   for preimages.
    - target_digest: optional 20-byte digest. If provided, the final
                   (h0..h4) state is constrained to match it.
    """

    def __init__(self, input_bytes, free_input_bits=(), target_digest=None, solver_name='g4'):
        if input_bytes is not None and (not input_bytes or len(input_bytes) % BLOCK_SIZE != 0):
            raise BlockAlignmentError(
                "input must be padded to a positive multiple of %d bytes" % BLOCK_SIZE)
        if target_digest is not None and len(target_digest) != DIGEST_SIZE:
            raise ValueError("target digest must be %d bytes" % DIGEST_SIZE)
        num_chunks = len(input_bytes) // BLOCK_SIZE if input_bytes is not None else 1
        self.solver = Solver(name=solver_name)
        self.var_idx = 1
        self.state = []
        self.x = []
        self.target_digest = target_digest
        self._encoded_rounds = None
        self._init_vars(num_chunks)
        if input_bytes is not None:
            free_input_bits = set(free_input_bits)
            out_of_range = [bit for bit in free_input_bits if not 0 <= bit < len(input_bytes) * 8]
            if out_of_range:
                raise ValueError("free input bits out of range: %r" % sorted(out_of_range))
            for i in range(len(input_bytes)):
                byte = self._get_byte_vars(self.x, i)
                for j in range(8):
                    if i * 8 + j in free_input_bits:
                        continue
                    self._add_constant([byte[j]], (input_bytes[i] >> (7 - j)) & 1)
        # Constrain the initial state to the SHA-0 initial vector (IV).
        for word, iv in zip(self.state, SHA0State.IV):
            self._add_constant(word, iv)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.delete()

    def delete(self):
        """Release the underlying solver."""
        if self.solver is not None:
            self.solver.delete()
            self.solver = None

    def _init_number(self, num_bits):
        """Allocate and return a fresh vector of SAT variables of length num_bits."""
        num = list(range(self.var_idx, self.var_idx + num_bits))
        self.var_idx += num_bits
        return num

    def _init_vars(self, num_chunks):
        """Initialize message and state variables for the given chunk count."""
        self.x = self._init_number(512 * num_chunks)
        self.state = [self._init_number(32) for _ in range(5)]

    def _get_byte_vars(self, bit_array, byte_idx):
        """Return the 8-bit slice vars corresponding to byte_idx (MSB-first bytes)."""
        return bit_array[byte_idx*8:(byte_idx+1)*8]

    def _get_word_vars(self, bit_array, word_idx):
        """Return the 32-bit slice vars corresponding to word_idx (MSB-first words)."""
        return bit_array[word_idx*32:(word_idx+1)*32]

    def _add_constant(self, bit_array, constant):
        """Fix bit_array to the unsigned value constant (MSB first)."""
        assert 0 <= constant < 2 ** len(bit_array)
        for i in range(len(bit_array)):
            c_bit = (constant >> (len(bit_array) - i - 1)) & 1
            if c_bit == 1:
                self.solver.add_clause([bit_array[i]])
            else:
                self.solver.add_clause([-bit_array[i]])
        return bit_array

    def _add_or(self, a, b, c=None):
        """Bitwise OR: c = a | b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([a[i], b[i], -c[i]])
            self.solver.add_clause([-a[i], c[i]])
            self.solver.add_clause([-b[i], c[i]])
        return c

    def _add_and(self, a, b, c=None):
        """Bitwise AND: c = a & b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i], c[i]])
            self.solver.add_clause([a[i], -c[i]])
            self.solver.add_clause([b[i], -c[i]])
        return c

    def _add_xor(self, a, b, c=None):
        """Bitwise XOR: c = a ^ b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i], -c[i]])
            self.solver.add_clause([a[i], b[i], -c[i]])
            self.solver.add_clause([a[i], -b[i], c[i]])
            self.solver.add_clause([-a[i], b[i], c[i]])
        return c

    def _add_not(self, a, b=None):
        """Bitwise NOT: b = ~a. Returns b (allocates if None)."""
        if b is not None:
            assert len(a) == len(b)
        else:
            b = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i]])
            self.solver.add_clause([a[i], b[i]])
        return b

    def _add_sum(self, a, b, c=None):
        """Add two n-bit vectors a and b modulo 2^n (ripple-carry adder)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        carry = None  # carry into the current bit
        # Walk from LSB (index n-1) to MSB (index 0).
        for idx in range(len(a) - 1, -1, -1):
            if carry is None:
                # Half-adder for LSB
                self._add_xor([a[idx]], [b[idx]], [c[idx]])
                if idx > 0:
                    carry = self._add_and([a[idx]], [b[idx]])[0]
            else:
                ab_xor = self._add_xor([a[idx]], [b[idx]])[0]
                self._add_xor([carry], [ab_xor], [c[idx]])
                if idx > 0:
                    cout1 = self._add_and([a[idx]], [b[idx]])[0]
                    cout2 = self._add_and([carry], [ab_xor])[0]
                    carry = self._add_or([cout1], [cout2])[0]
        return c

    def _add_rotate_left(self, a, n, b=None):
        """Rotate-left by n bits. Returns b (allocates if None)."""
        if b is not None:
            assert len(a) == len(b)
        else:
            b = self._init_number(len(a))
        for i in range(len(a)):
            b_idx = (len(a) + i - n) % len(a)
            self.solver.add_clause([a[i], -b[b_idx]])
            self.solver.add_clause([-a[i], b[b_idx]])
        return b

    def add_schedule(self, chunk_idx):
        """Encode the 80-word message schedule of one chunk (no rotation)."""
        w = [self._get_word_vars(self.x, chunk_idx*16 + j) for j in range(16)]
        for j in range(16, 80):
            w.append(self._add_xor(self._add_xor(w[j-3], w[j-8]),
                                   self._add_xor(w[j-14], w[j-16])))
        return w

    def add_F(self, b, c, d, i):
        """CNF version of SHA-0's round-dependent boolean function."""
        if i < 0:
            raise ValueError("Invalid loop index")
        elif i < 20:
            return self._add_or(self._add_and(b, c), self._add_and(self._add_not(b), d))
        elif i < 40 or 60 <= i < 80:
            return self._add_xor(self._add_xor(b, c), d)
        elif i < 60:
            return self._add_or(self._add_or(self._add_and(b, c), self._add_and(b, d)),
                                self._add_and(c, d))
        else:
            raise ValueError("Invalid loop index")

    def add_sha0_iteration(self, a, b, c, d, e, w, i):
        """One SHA-0 step updating (a,b,c,d,e) with schedule word w at step i."""
        f = self.add_F(b, c, d, i)
        k = self._add_constant(self._init_number(32), SHA0.K(i))
        temp = self._add_sum(self._add_sum(self._add_rotate_left(a, 5), f),
                             self._add_sum(self._add_sum(e, k), w))
        return temp, a, self._add_rotate_left(b, 30), c, d

    def solve_sha0_chunk(self, chunk_idx, num_rounds=4):
        """Encode all steps for one 64-byte chunk and update state variables."""
        SHA0._check_rounds(num_rounds)
        w = self.add_schedule(chunk_idx)
        a, b, c, d, e = self.state

        for i in range(num_rounds * 20):
            a, b, c, d, e = self.add_sha0_iteration(a, b, c, d, e, w[i], i)

        # State update: add the incoming chaining value.
        self.state = [self._add_sum(h, x) for h, x in zip(self.state, (a, b, c, d, e))]

    def _encode(self, num_rounds):
        """Encode every chunk and the optional digest constraint, once."""
        SHA0._check_rounds(num_rounds)
        for i in range(len(self.x) // 512):
            self.solve_sha0_chunk(i, num_rounds)

        if self.target_digest is not None:
            for j, word in enumerate(self.state):
                self._add_constant(word, int.from_bytes(self.target_digest[j*4:j*4+4], 'big'))

        self._encoded_rounds = num_rounds
        logger.debug("Encoded %d round(s): %d vars, %d clauses",
                     num_rounds, self.solver.nof_vars(), self.solver.nof_clauses())

    def solve_sha0(self, num_rounds=4, timeout=None):
        """Finalize the encoding for all chunks, add optional digest constraint, and solve.

        Returns (False, None) if UNSAT, (None, None) if the solver was
        interrupted after timeout seconds, otherwise
        (True, (x_bytes, digest_bytes)).

        The encoding is built on the first call only; later calls re-run the
        solver on it, so they must ask for the same num_rounds.
        """
        if self._encoded_rounds is None:
            self._encode(num_rounds)
        elif self._encoded_rounds != num_rounds:
            raise ValueError("instance already encoded with %d round(s), got %r"
                             % (self._encoded_rounds, num_rounds))

        timer = None
        if timeout is not None:
            timer = Timer(timeout, self.solver.interrupt)
            timer.start()
        try:
            sat = self.solver.solve_limited(expect_interrupt=True)
        finally:
            if timer is not None:
                timer.cancel()
                self.solver.clear_interrupt()

        if sat is None:
            logger.info("Solver interrupted after %ss", timeout)
            return None, None
        if not sat:
            logger.info("Instance is UNSAT")
            return False, None
        logger.info("Instance is SAT")
        return sat, self.process_solution(self.solver.get_model())

    def solution_to_bytes(self, model, vars):
        """Read a bit-vector assignment from model and pack into bytes.

        Bits inside each byte are read MSB-first.
        """
        byte_vals = b""
        byte = 0
        for j, bit_var in enumerate(vars):
            bit_val = model[bit_var-1] > 0
            byte |= bit_val << (8 - (j % 8) - 1)
            if j % 8 == 7:
                byte_vals += byte.to_bytes(1, 'big')
                byte = 0
        return byte_vals

    def process_solution(self, model):
        """Extract (message_bytes, digest_bytes) from a satisfying assignment."""
        digest = b"".join(self.solution_to_bytes(model, word) for word in self.state)
        x = self.solution_to_bytes(model, self.x)
        return x, digest

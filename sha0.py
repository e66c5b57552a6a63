"""SHA-0 hash function (teaching/demo implementation).

This module provides a small, readable implementation of SHA-0, the original
1993 Secure Hash Standard that was withdrawn in favour of SHA-1. The only
difference from SHA-1 is the message schedule: SHA-0 expands the 16 block
words to 80 without the one-bit left rotation.

The compression function can execute a configurable number of rounds
(1–4 rounds = 20 steps each; full SHA-0 uses 4). Hash state is never shared
between computations: every digest starts from a fresh SHA0State.
"""
import argparse
import logging
import struct
import sys
from collections import namedtuple

logger = logging.getLogger(__name__)

MASK = 0xffffffff
BLOCK_SIZE = 64     # 512 bits
DIGEST_SIZE = 20    # 160 bits


class BlockAlignmentError(ValueError):
    """Padded input whose length is not a positive multiple of BLOCK_SIZE."""


class LengthOverflowError(OverflowError):
    """Message whose bit length does not fit in an unsigned 64-bit integer."""


class SHA0State(namedtuple("SHA0State", ["h0", "h1", "h2", "h3", "h4"])):
    """The five 32-bit chaining words carried between blocks."""

    __slots__ = ()

    IV = (0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476, 0xc3d2e1f0)

    @classmethod
    def initial(cls):
        return cls(*cls.IV)

    def to_bytes(self):
        """Serialize h0..h4 as big-endian words, h0 first."""
        return struct.pack(">5I", *self)


class SHA0:

    # One additive constant per 20-step round
    K_table = (0x5a827999, 0x6ed9eba1, 0x8f1bbcdc, 0xca62c1d6)

    @staticmethod
    def _check_rounds(num_rounds):
        if num_rounds not in (1, 2, 3, 4):
            raise ValueError("num_rounds must be 1, 2, 3 or 4, got %r" % (num_rounds,))

    @staticmethod
    def K(i):
        """Return the additive constant for step index i (0 ≤ i < 80)."""
        if not 0 <= i < 80:
            raise ValueError("Invalid loop index")
        return SHA0.K_table[i // 20]

    @staticmethod
    def F(b, c, d, i):
        """SHA-0 non-linear boolean function selected by step index i.

        Round 0 (i < 20): (b & c) | (~b & d)            IF
        Round 1 (i < 40): b ^ c ^ d                     XOR
        Round 2 (i < 60): (b & c) | (b & d) | (c & d)   MAJ
        Round 3 (i < 80): b ^ c ^ d                     XOR
        """
        if i < 0:
            raise ValueError("Invalid loop index")
        elif i < 20:
            return (b & c) | ((~b & MASK) & d)
        elif i < 40:
            return b ^ c ^ d
        elif i < 60:
            return (b & c) | (b & d) | (c & d)
        elif i < 80:
            return b ^ c ^ d
        else:
            raise ValueError("Invalid loop index")

    @staticmethod
    def ROT(x, n):
        """Rotate x left by n bits, modulo 2^32 (0 < n < 32)."""
        x = x & MASK
        return ((x << n) | (x >> (32 - n))) & MASK

    @staticmethod
    def sha0_padded(input_bytes):
        """Return input_bytes padded to a multiple of 64 bytes per SHA-0.

        Padding: 0x80 byte, then 0x00 bytes up to 56 mod 64, then the
        64-bit big-endian length (in bits) of the unpadded input.
        """
        num_bits = len(input_bytes) * 8
        if num_bits >= 1 << 64:
            raise LengthOverflowError(
                "message of %d bytes exceeds the 64-bit length field" % len(input_bytes))
        zeros = (55 - len(input_bytes)) % BLOCK_SIZE
        return bytes(input_bytes) + b"\x80" + b"\x00" * zeros + struct.pack(">Q", num_bits)

    @staticmethod
    def sha0_schedule(block):
        """Expand one 64-byte block into the 80-word message schedule.

        W[j] = W[j-3] ^ W[j-8] ^ W[j-14] ^ W[j-16] with no rotation; SHA-1
        rotates this value left by one.
        """
        if len(block) != BLOCK_SIZE:
            raise BlockAlignmentError("block must be %d bytes, got %d" % (BLOCK_SIZE, len(block)))
        w = [0] * 80
        w[:16] = struct.unpack(">16I", block)
        for j in range(16, 80):
            w[j] = w[j - 3] ^ w[j - 8] ^ w[j - 14] ^ w[j - 16]
        return w

    @staticmethod
    def sha0_iteration(a, b, c, d, e, w, i):
        """Perform one SHA-0 step (i) on state (a,b,c,d,e) with schedule word w."""
        temp = (SHA0.ROT(a, 5) + SHA0.F(b, c, d, i) + e + SHA0.K(i) + w) & MASK
        return temp, a, SHA0.ROT(b, 30), c, d

    @staticmethod
    def sha0_chunk(state, block, num_rounds=4):
        """Process one 64-byte block and return the updated chaining state."""
        SHA0._check_rounds(num_rounds)
        w = SHA0.sha0_schedule(block)
        a, b, c, d, e = state

        for i in range(num_rounds * 20):
            a, b, c, d, e = SHA0.sha0_iteration(a, b, c, d, e, w[i], i)

        return SHA0State(*((h + x) & MASK for h, x in zip(state, (a, b, c, d, e))))

    @staticmethod
    def digest(input_bytes, num_rounds=4):
        """Compute the SHA-0 digest (20 bytes) of already padded input_bytes."""
        SHA0._check_rounds(num_rounds)
        if not input_bytes or len(input_bytes) % BLOCK_SIZE != 0:
            raise BlockAlignmentError(
                "padded input must be a positive multiple of %d bytes, got %d"
                % (BLOCK_SIZE, len(input_bytes)))

        state = SHA0State.initial()
        for i in range(0, len(input_bytes), BLOCK_SIZE):
            state = SHA0.sha0_chunk(state, input_bytes[i:i + BLOCK_SIZE], num_rounds)
        return state.to_bytes()

    @staticmethod
    def hexdigest(input_bytes, num_rounds=4):
        """Like digest(), as 40 lowercase hex characters."""
        return SHA0.digest(input_bytes, num_rounds).hex()


def sha0(message, num_rounds=4):
    """Pad and hash message, returning the 20-byte SHA-0 digest."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return SHA0.digest(SHA0.sha0_padded(message), num_rounds)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="sha0", description="Print the SHA-0 digest of a message.")
    parser.add_argument("message", nargs="?", help="message to hash; prompted for when omitted")
    parser.add_argument("--rounds", type=int, default=4, choices=(1, 2, 3, 4),
                        help="number of 20-step rounds (default: 4, full SHA-0)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    message = args.message
    if message is None:
        try:
            tokens = input("Enter something: ").split()
        except (EOFError, KeyboardInterrupt):
            logger.error("No input read")
            return 1
        if not tokens:
            logger.error("No input read")
            return 1
        # Only the first whitespace-delimited word is hashed from the prompt.
        message = tokens[0]

    logger.debug("Hashing %d characters with %d round(s)", len(message), args.rounds)
    print("SHA-0 Hash:", sha0(message, args.rounds).hex())
    return 0


if __name__ == "__main__":
    sys.exit(main())

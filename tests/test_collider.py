import unittest

from collider import SHA0Collider
from sha0 import SHA0, BlockAlignmentError


def model_value(model, var_id):
    return model[var_id - 1] > 0


class TestSHA0ColliderGates(unittest.TestCase):
    def setUp(self):
        self.collider = SHA0Collider(SHA0.sha0_padded(b"Hello, World!"))

    def tearDown(self):
        self.collider.delete()

    def _bits(self, n):
        return self.collider._init_number(n)

    def _solve_with(self, bits, values):
        assumps = [b if v else -b for b, v in zip(bits, values)]
        return self.collider.solver.solve(assumptions=assumps)

    def test_add_constant_sets_bits_correctly_msb_first(self):
        bits = self._bits(4)
        self.collider._add_constant(bits, 0b1010)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        expected = [True, False, True, False]
        for var_id, exp in zip(bits, expected):
            self.assertEqual(model_value(model, var_id), exp)

    def test_add_or_truth_table(self):
        a, b, c = self._bits(1), self._bits(1), self._bits(1)
        self.collider._add_or(a, b, c)
        for a_val in (False, True):
            for b_val in (False, True):
                for c_val in (False, True):
                    sat = self._solve_with(a + b + c, (a_val, b_val, c_val))
                    self.assertEqual(sat, (a_val or b_val) == c_val)

    def test_add_and_truth_table(self):
        a, b, c = self._bits(1), self._bits(1), self._bits(1)
        self.collider._add_and(a, b, c)
        for a_val in (False, True):
            for b_val in (False, True):
                for c_val in (False, True):
                    sat = self._solve_with(a + b + c, (a_val, b_val, c_val))
                    self.assertEqual(sat, (a_val and b_val) == c_val)

    def test_add_xor_truth_table(self):
        a, b, c = self._bits(1), self._bits(1), self._bits(1)
        self.collider._add_xor(a, b, c)
        for a_val in (False, True):
            for b_val in (False, True):
                for c_val in (False, True):
                    sat = self._solve_with(a + b + c, (a_val, b_val, c_val))
                    self.assertEqual(sat, (a_val ^ b_val) == c_val)

    def test_add_not_truth_table(self):
        a, b = self._bits(1), self._bits(1)
        self.collider._add_not(a, b)
        for a_val in (False, True):
            for b_val in (False, True):
                sat = self._solve_with(a + b, (a_val, b_val))
                self.assertEqual(sat, b_val == (not a_val))

    def test_add_sum_wraps(self):
        a, b = self._bits(4), self._bits(4)
        self.collider._add_constant(a, 0b1110)
        self.collider._add_constant(b, 0b1101)
        c = self.collider._add_sum(a, b)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        expected = [True, False, True, True]  # 14 + 13 = 27 = 0b1011 mod 16
        for var_id, exp in zip(c, expected):
            self.assertEqual(model_value(model, var_id), exp)

    def test_add_sum_32_bit(self):
        a, b = self._bits(32), self._bits(32)
        self.collider._add_constant(a, 0xfedcba98)
        self.collider._add_constant(b, 0x89abcdef)
        c = self.collider._add_sum(a, b)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        got = int.from_bytes(self.collider.solution_to_bytes(model, c), 'big')
        self.assertEqual(got, (0xfedcba98 + 0x89abcdef) & 0xffffffff)

    def test_add_rotate_left(self):
        a = self._bits(4)
        b = self.collider._add_rotate_left(a, 2)
        self.collider._add_constant(a, 0b1101)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        expected = [False, True, True, True]
        for var_id, exp in zip(b, expected):
            self.assertEqual(model_value(model, var_id), exp)

    def test_add_rotate_left_matches_engine(self):
        a = self._bits(32)
        self.collider._add_constant(a, 0x12345678)
        b = self.collider._add_rotate_left(a, 5)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        got = int.from_bytes(self.collider.solution_to_bytes(model, b), 'big')
        self.assertEqual(got, SHA0.ROT(0x12345678, 5))


class TestSHA0ColliderEncoding(unittest.TestCase):

    def test_rejects_unaligned_input(self):
        with self.assertRaises(BlockAlignmentError):
            SHA0Collider(b"abc")

    def test_rejects_bad_digest_length(self):
        with self.assertRaises(ValueError):
            SHA0Collider(SHA0.sha0_padded(b"abc"), target_digest=b"\x00" * 16)

    def test_schedule_matches_engine(self):
        padded = SHA0.sha0_padded(b"abc")
        with SHA0Collider(padded) as collider:
            w = collider.add_schedule(0)
            self.assertTrue(collider.solver.solve())
            model = collider.solver.get_model()
            expected = SHA0.sha0_schedule(padded)
            for j in (0, 15, 16, 17, 40, 79):
                got = int.from_bytes(collider.solution_to_bytes(model, w[j]), 'big')
                self.assertEqual(got, expected[j])

    def test_round_function_matches_engine(self):
        b_val, c_val, d_val = 0xff00ff00, 0xf0f0f0f0, 0xcccccccc
        with SHA0Collider(SHA0.sha0_padded(b"")) as collider:
            words = [collider._add_constant(collider._init_number(32), v)
                     for v in (b_val, c_val, d_val)]
            outputs = {i: collider.add_F(*words, i) for i in (0, 20, 40, 60)}
            self.assertTrue(collider.solver.solve())
            model = collider.solver.get_model()
            for i, f in outputs.items():
                got = int.from_bytes(collider.solution_to_bytes(model, f), 'big')
                self.assertEqual(got, SHA0.F(b_val, c_val, d_val, i))

    def test_solve_sha0_chunk(self):
        padded = SHA0.sha0_padded(b"abc")
        with SHA0Collider(padded) as collider:
            sat, (x, digest) = collider.solve_sha0()
        self.assertTrue(sat)
        self.assertEqual(x, padded)
        self.assertEqual(digest.hex(), "0164b8a914cd2a5e74c4f7ff082c4d97f1edf880")

    def test_solve_two_chunks_reduced_rounds(self):
        padded = SHA0.sha0_padded(b"x" * 56)
        with SHA0Collider(padded) as collider:
            sat, (x, digest) = collider.solve_sha0(num_rounds=1)
        self.assertTrue(sat)
        self.assertEqual(x, padded)
        self.assertEqual(digest, SHA0.digest(padded, num_rounds=1))

    def test_wrong_target_digest_is_unsat(self):
        padded = SHA0.sha0_padded(b"abc")
        wrong = bytearray(SHA0.digest(padded, num_rounds=1))
        wrong[0] ^= 0x80
        with SHA0Collider(padded, target_digest=bytes(wrong)) as collider:
            sat, result = collider.solve_sha0(num_rounds=1)
        self.assertFalse(sat)
        self.assertIsNone(result)

    def test_recovers_freed_bits_reduced_rounds(self):
        padded = SHA0.sha0_padded(b"abc")
        target = SHA0.digest(padded, num_rounds=1)
        with SHA0Collider(padded, free_input_bits=range(8), target_digest=target) as collider:
            sat, result = collider.solve_sha0(num_rounds=1, timeout=60)
        self.assertTrue(sat, "No solution found")
        x, digest = result
        self.assertEqual(digest, target)
        self.assertEqual(SHA0.digest(x, num_rounds=1), target)
        self.assertEqual(x, padded)

    def test_second_solve_reuses_encoding(self):
        padded = SHA0.sha0_padded(b"abc")
        with SHA0Collider(padded) as collider:
            first = collider.solve_sha0(num_rounds=1)
            sat, (x, digest) = collider.solve_sha0(num_rounds=1)
        self.assertEqual(first, (sat, (x, digest)))
        self.assertTrue(sat)
        self.assertEqual(digest, SHA0.digest(x, num_rounds=1))

    def test_retry_after_interrupt_matches_engine(self):
        padded = SHA0.sha0_padded(b"abc")
        target = SHA0.digest(padded, num_rounds=1)
        with SHA0Collider(padded, free_input_bits=range(8), target_digest=target) as collider:
            sat, result = collider.solve_sha0(num_rounds=1, timeout=0.0001)
            if sat is None:
                sat, result = collider.solve_sha0(num_rounds=1, timeout=60)
        self.assertTrue(sat)
        x, digest = result
        self.assertEqual(digest, target)
        self.assertEqual(SHA0.digest(x, num_rounds=1), digest)

    def test_second_solve_rejects_other_round_count(self):
        with SHA0Collider(SHA0.sha0_padded(b"abc")) as collider:
            collider.solve_sha0(num_rounds=1)
            with self.assertRaises(ValueError):
                collider.solve_sha0(num_rounds=2)

    def test_rejects_out_of_range_free_bits(self):
        padded = SHA0.sha0_padded(b"abc")
        for bits in ([512], [-1], [3, 600]):
            with self.assertRaises(ValueError):
                SHA0Collider(padded, free_input_bits=bits)


if __name__ == "__main__":
    unittest.main(verbosity=1)

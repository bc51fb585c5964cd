import unittest

import numpy as np

from src.flowdnn.infrastructure.ops.im2col_cpu import col2im, conv_out_size, im2col


class TestIm2Col(unittest.TestCase):
    def test_output_size_formula(self):
        self.assertEqual(conv_out_size(28, 5, 0, 1), 24)
        self.assertEqual(conv_out_size(5, 3, 1, 2), 3)
        self.assertEqual(conv_out_size(4, 3, 0, 2), 1)

    def test_identity_kernel_reconstructs_input(self):
        rng = np.random.default_rng(0)
        x = rng.standard_normal(2 * 3 * 4).astype(np.float32)
        col = np.empty_like(x)
        im2col(x, 2, 3, 4, 1, 1, 0, 0, 1, 1, col)
        np.testing.assert_array_equal(col, x)

        back = np.full_like(x, 7.0)
        col2im(col, 2, 3, 4, 1, 1, 0, 0, 1, 1, back)
        np.testing.assert_array_equal(back, x)

    def test_padding_reads_zeros(self):
        x = np.arange(1, 5, dtype=np.float32)  # 1 x 2 x 2
        col = np.full(9 * 4, -1.0, dtype=np.float32)
        im2col(x, 1, 2, 2, 3, 3, 1, 1, 1, 1, col)
        col = col.reshape(9, 4)
        # center kernel tap reads every input pixel
        np.testing.assert_array_equal(col[4], x)
        # top-left tap only lands inside the image for output (1, 1)
        np.testing.assert_array_equal(col[0], [0, 0, 0, 1])
        self.assertFalse((col < 0).any())

    def test_known_patch_layout(self):
        x = np.arange(9, dtype=np.float32)  # 1 x 3 x 3
        col = np.empty(4 * 4, dtype=np.float32)
        im2col(x, 1, 3, 3, 2, 2, 0, 0, 1, 1, col)
        expected = np.array(
            [
                [0, 1, 3, 4],
                [1, 2, 4, 5],
                [3, 4, 6, 7],
                [4, 5, 7, 8],
            ],
            dtype=np.float32,
        )
        np.testing.assert_array_equal(col.reshape(4, 4), expected)

    def test_col2im_is_adjoint_of_im2col(self):
        rng = np.random.default_rng(1)
        c, h, w, k, p, s = 2, 5, 4, 3, 1, 2
        oh, ow = conv_out_size(h, k, p, s), conv_out_size(w, k, p, s)
        x = rng.standard_normal(c * h * w).astype(np.float32)
        y = rng.standard_normal(c * k * k * oh * ow).astype(np.float32)

        col = np.empty_like(y)
        im2col(x, c, h, w, k, k, p, p, s, s, col)
        back = np.empty_like(x)
        col2im(y, c, h, w, k, k, p, p, s, s, back)

        lhs = np.dot(col.astype(np.float64), y.astype(np.float64))
        rhs = np.dot(x.astype(np.float64), back.astype(np.float64))
        self.assertAlmostEqual(lhs, rhs, delta=1e-4)

    def test_col2im_accumulates_overlaps(self):
        col = np.ones(4 * 4, dtype=np.float32)
        im = np.empty(9, dtype=np.float32)
        col2im(col, 1, 3, 3, 2, 2, 0, 0, 1, 1, im)
        np.testing.assert_array_equal(
            im.reshape(3, 3), [[1, 2, 1], [2, 4, 2], [1, 2, 1]]
        )


if __name__ == "__main__":
    unittest.main()

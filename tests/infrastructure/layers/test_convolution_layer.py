import unittest

import numpy as np

from src.flowdnn.domain import ArityError, ConfigurationError, ShapeMismatchError
from src.flowdnn.infrastructure.layers import ConvolutionLayer, LayerData, PoolingLayer
from src.flowdnn.infrastructure.tensor import Tensor
from src.flowdnn.infrastructure.utils import GradientChecker


def bind(layer, *arrays) -> LayerData:
    bottoms = []
    for name, arr in zip(layer.bottom_names, arrays):
        arr = np.asarray(arr, dtype=np.float32)
        t = Tensor(name, arr.shape)
        t.copy_from_numpy(arr)
        bottoms.append(t)
    data = LayerData(bottom=bottoms)
    layer.setup(data)
    return data


def conv_reference(x, w, b, stride, pad, groups):
    n, c, h, wd = x.shape
    f, cg, kh, kw = w.shape
    xp = np.pad(x, ((0, 0), (0, 0), (pad, pad), (pad, pad)))
    oh = (h + 2 * pad - kh) // stride + 1
    ow = (wd + 2 * pad - kw) // stride + 1
    fg = f // groups
    out = np.zeros((n, f, oh, ow), dtype=np.float64)
    for o in range(f):
        g = o // fg
        for i in range(oh):
            for j in range(ow):
                patch = xp[:, g * cg : (g + 1) * cg, i * stride : i * stride + kh, j * stride : j * stride + kw]
                out[:, o, i, j] = (patch * w[o]).sum(axis=(1, 2, 3))
        if b is not None:
            out[:, o] += b[o]
    return out


class TestConvolutionLayer(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = np.random.default_rng(0)

    def test_mnist_geometry(self):
        conv = ConvolutionLayer("conv1", ["data"], ["conv1"], num_outputs=4, kernel_h=5, kernel_w=5)
        data = bind(conv, np.zeros((2, 1, 28, 28)))
        self.assertEqual(data.top[0].shape.as_tuple(), (2, 4, 24, 24))

        pool = PoolingLayer("pool1", ["conv1"], ["pool1"], kernel_h=2, kernel_w=2, stride_h=2, stride_w=2)
        pool_data = LayerData(bottom=[data.top[0]])
        pool.setup(pool_data)
        self.assertEqual(pool_data.top[0].shape.as_tuple(), (2, 4, 12, 12))

    def test_forward_matches_reference(self):
        x = self.rng.standard_normal((2, 4, 5, 6)).astype(np.float32)
        conv = ConvolutionLayer(
            "conv", ["x"], ["y"],
            num_outputs=6, kernel_h=3, kernel_w=3, pad_h=1, pad_w=1,
            stride_h=2, stride_w=2, num_groups=2, bias_filler="gaussian", seed=4,
        )
        data = bind(conv, x)
        conv.forward(data)

        w = conv.weight.values()
        b = conv.bias.value
        expected = conv_reference(x, w, b, stride=2, pad=1, groups=2)
        np.testing.assert_allclose(data.top[0].values(), expected, rtol=1e-4, atol=1e-5)

    def test_weight_shape_uses_channels_per_group(self):
        conv = ConvolutionLayer("conv", ["x"], ["y"], num_outputs=4, kernel_h=2, kernel_w=3, num_groups=2)
        bind(conv, np.zeros((1, 6, 4, 4)))
        self.assertEqual(conv.weight.shape.as_tuple(), (4, 3, 2, 3))
        self.assertEqual(conv.bias.shape.as_tuple(), (1, 1, 1, 4))
        self.assertEqual(conv.trainable_parameters(), [conv.weight, conv.bias])

    def test_gradients_match_finite_differences(self):
        conv = ConvolutionLayer(
            "conv", ["x"], ["y"],
            num_outputs=4, kernel_h=3, kernel_w=2, pad_h=1, pad_w=0,
            stride_h=2, stride_w=1, num_groups=2, bias_filler="gaussian",
            bias_filler_options={"std": 0.5}, seed=5,
        )
        data = bind(conv, self.rng.standard_normal((2, 2, 4, 3)))
        failures = GradientChecker().check(conv, data)
        self.assertEqual(failures, [], msg="\n".join(map(str, failures)))

    def test_multiple_bottoms_share_filters(self):
        x0 = self.rng.standard_normal((1, 2, 4, 4)).astype(np.float32)
        x1 = self.rng.standard_normal((1, 2, 4, 4)).astype(np.float32)
        conv = ConvolutionLayer("conv", ["a", "b"], ["ya", "yb"], num_outputs=3, kernel_h=3, kernel_w=3, seed=6)
        data = bind(conv, x0, x1)
        conv.forward(data)

        w, b = conv.weight.values(), conv.bias.value
        np.testing.assert_allclose(data.top[0].values(), conv_reference(x0, w, b, 1, 0, 1), rtol=1e-4, atol=1e-5)
        np.testing.assert_allclose(data.top[1].values(), conv_reference(x1, w, b, 1, 0, 1), rtol=1e-4, atol=1e-5)

        failures = GradientChecker().check(conv, data)
        self.assertEqual(failures, [], msg="\n".join(map(str, failures)))

    def test_bottoms_must_share_shape(self):
        conv = ConvolutionLayer("conv", ["a", "b"], ["ya", "yb"], num_outputs=1, kernel_h=1, kernel_w=1)
        with self.assertRaises(ShapeMismatchError):
            bind(conv, np.zeros((1, 1, 3, 3)), np.zeros((1, 1, 4, 4)))

    def test_top_count_must_match_bottom_count(self):
        conv = ConvolutionLayer("conv", ["a"], ["ya", "yb"], num_outputs=1, kernel_h=1, kernel_w=1)
        with self.assertRaises(ArityError):
            bind(conv, np.zeros((1, 1, 3, 3)))

    def test_groups_must_divide_channels_and_outputs(self):
        conv = ConvolutionLayer("conv", ["x"], ["y"], num_outputs=4, kernel_h=1, kernel_w=1, num_groups=2)
        with self.assertRaises(ConfigurationError):
            bind(conv, np.zeros((1, 3, 2, 2)))

        conv = ConvolutionLayer("conv", ["x"], ["y"], num_outputs=3, kernel_h=1, kernel_w=1, num_groups=2)
        with self.assertRaises(ConfigurationError):
            bind(conv, np.zeros((1, 4, 2, 2)))

    def test_kernel_larger_than_input(self):
        conv = ConvolutionLayer("conv", ["x"], ["y"], num_outputs=1, kernel_h=5, kernel_w=5)
        with self.assertRaises(ConfigurationError):
            bind(conv, np.zeros((1, 1, 3, 3)))


if __name__ == "__main__":
    unittest.main()

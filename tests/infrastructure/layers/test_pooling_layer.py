import unittest

import numpy as np

from src.flowdnn.domain import ArityError, ConfigurationError
from src.flowdnn.infrastructure.layers import LayerData, PoolingLayer, PoolMethod
from src.flowdnn.infrastructure.tensor import Tensor
from src.flowdnn.infrastructure.utils import GradientChecker


def bind(layer, arr) -> LayerData:
    arr = np.asarray(arr, dtype=np.float32)
    t = Tensor(layer.bottom_names[0], arr.shape)
    t.copy_from_numpy(arr)
    data = LayerData(bottom=[t])
    layer.setup(data)
    return data


def separated(rng, shape) -> np.ndarray:
    # distinct values 0.1 apart so finite differences never flip an argmax
    return (rng.permutation(int(np.prod(shape))) * 0.1).reshape(shape)


class TestPoolingLayer(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = np.random.default_rng(0)

    def test_max_forward_and_mask_top(self):
        x = np.array([[[[1, 5, 2, 0], [3, 4, 8, 1], [0, 0, 1, 1], [9, 0, 1, 2]]]])
        layer = PoolingLayer("pool", ["x"], ["y", "mask"], kernel_h=2, kernel_w=2, stride_h=2, stride_w=2)
        data = bind(layer, x)
        layer.forward(data)
        np.testing.assert_array_equal(data.top[0].values()[0, 0], [[5, 8], [9, 2]])
        np.testing.assert_array_equal(data.top[1].values()[0, 0], [[1, 6], [12, 15]])

    def test_max_gradients_match_finite_differences(self):
        layer = PoolingLayer("pool", ["x"], ["y"], kernel_h=3, kernel_w=2, stride_h=2, stride_w=1, pad_h=1)
        data = bind(layer, separated(self.rng, (2, 2, 5, 4)))
        failures = GradientChecker().check(layer, data)
        self.assertEqual(failures, [], msg="\n".join(map(str, failures)))

    def test_max_gradients_with_mask_top(self):
        layer = PoolingLayer("pool", ["x"], ["y", "mask"], kernel_h=2, kernel_w=2, stride_h=2, stride_w=2)
        data = bind(layer, separated(self.rng, (1, 2, 4, 4)))
        failures = GradientChecker().check(layer, data, top_index=0)
        self.assertEqual(failures, [], msg="\n".join(map(str, failures)))

    def test_average_gradients_match_finite_differences(self):
        layer = PoolingLayer(
            "pool", ["x"], ["y"], method="average",
            kernel_h=3, kernel_w=3, stride_h=2, stride_w=2, pad_h=1, pad_w=1,
        )
        self.assertIs(layer.method, PoolMethod.AVERAGE)
        data = bind(layer, self.rng.standard_normal((2, 1, 5, 5)))
        failures = GradientChecker().check(layer, data)
        self.assertEqual(failures, [], msg="\n".join(map(str, failures)))

    def test_backward_overwrites_input_gradient(self):
        layer = PoolingLayer("pool", ["x"], ["y"], kernel_h=2, kernel_w=2, stride_h=2, stride_w=2)
        data = bind(layer, separated(self.rng, (1, 1, 4, 4)))
        layer.forward(data)
        data.bottom[0].gradient[...] = 5.0
        data.top[0].gradient[...] = 1.0
        layer.backward(data)
        self.assertEqual(float(data.bottom[0].gradient.sum()), 4.0)

    def test_average_rejects_mask_top(self):
        layer = PoolingLayer("pool", ["x"], ["y", "mask"], method="average", kernel_h=2, kernel_w=2)
        with self.assertRaises(ArityError):
            bind(layer, np.zeros((1, 1, 4, 4)))

    def test_padding_must_be_smaller_than_kernel(self):
        layer = PoolingLayer("pool", ["x"], ["y"], kernel_h=2, kernel_w=2, pad_h=2)
        with self.assertRaises(ConfigurationError):
            bind(layer, np.zeros((1, 1, 4, 4)))

    def test_unknown_method(self):
        with self.assertRaises(ValueError):
            PoolingLayer("pool", ["x"], ["y"], method="median", kernel_h=2, kernel_w=2)


if __name__ == "__main__":
    unittest.main()

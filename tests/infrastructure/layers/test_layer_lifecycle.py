import unittest

from src.flowdnn.domain import (
    ConfigurationError,
    LayerState,
    LayerStateError,
    ShapeMismatchError,
)
from src.flowdnn.infrastructure.layers import (
    ConvolutionLayer,
    InnerProductLayer,
    LayerData,
    SoftmaxLayer,
)
from src.flowdnn.infrastructure.tensor import Parameter, Tensor


def bottom(shape) -> LayerData:
    return LayerData(bottom=[Tensor("x", shape)])


class TestLayerStateMachine(unittest.TestCase):
    def test_starts_unconfigured(self):
        layer = SoftmaxLayer("sm", ["x"], ["y"])
        self.assertEqual(layer.state, LayerState.UNCONFIGURED)

    def test_operations_before_setup_raise(self):
        layer = SoftmaxLayer("sm", ["x"], ["y"])
        with self.assertRaises(LayerStateError):
            layer.forward(bottom((1, 2, 1, 1)))
        with self.assertRaises(LayerStateError):
            layer.backward(bottom((1, 2, 1, 1)))

    def test_setup_only_once(self):
        layer = SoftmaxLayer("sm", ["x"], ["y"])
        layer.setup(bottom((1, 2, 1, 1)))
        self.assertEqual(layer.state, LayerState.READY)
        with self.assertRaises(LayerStateError):
            layer.setup(bottom((1, 2, 1, 1)))

    def test_failed_setup_is_terminal(self):
        layer = SoftmaxLayer("sm", ["x", "extra"], ["y"])
        with self.assertRaises(ConfigurationError):
            layer.setup(LayerData(bottom=[Tensor("x", (1, 2, 1, 1)), Tensor("extra", (1, 2, 1, 1))]))
        self.assertEqual(layer.state, LayerState.FAILED)
        with self.assertRaises(LayerStateError):
            layer.forward(bottom((1, 2, 1, 1)))
        with self.assertRaises(LayerStateError):
            layer.setup(bottom((1, 2, 1, 1)))

    def test_setup_returns_tops_and_fills_binding(self):
        layer = SoftmaxLayer("sm", ["x"], ["y"])
        data = bottom((2, 3, 1, 1))
        tops = layer.setup(data)
        self.assertEqual([t.name for t in tops], ["y"])
        self.assertIs(data.top[0], tops[0])

    def test_names_must_be_sequences(self):
        with self.assertRaises(ValueError):
            SoftmaxLayer("sm", "x", ["y"])
        with self.assertRaises(ValueError):
            SoftmaxLayer("", ["x"], ["y"])


class TestParameterRegistration(unittest.TestCase):
    def test_frozen_parameters_are_not_trainable(self):
        layer = InnerProductLayer("ip", ["x"], ["y"], num_outputs=2)
        layer.setup(bottom((1, 3, 1, 1)))
        layer.bias.requires_grad = False
        self.assertEqual(layer.trainable_parameters(), [layer.weight])
        self.assertEqual([n for n, _ in layer.named_parameters()], ["weight", "bias"])

    def test_assigning_parameter_registers_it(self):
        layer = SoftmaxLayer("sm", ["x"], ["y"])
        layer.extra = Parameter("sm_extra", (1, 1, 1, 1))
        self.assertEqual(layer.trainable_parameters(), [layer.extra])
        layer.extra = None
        self.assertEqual(layer.trainable_parameters(), [])


class TestShareParameters(unittest.TestCase):
    def test_share_rebinds_to_same_objects(self):
        a = InnerProductLayer("ip", ["x"], ["y"], num_outputs=2, seed=0)
        a.setup(bottom((4, 3, 1, 1)))
        b = InnerProductLayer("ip", ["x"], ["y"], num_outputs=2, seed=1)
        b.setup(bottom((1, 3, 1, 1)))

        b.share_parameters(a)
        self.assertIs(b.weight, a.weight)
        self.assertIs(b.bias, a.bias)
        self.assertEqual(b.trainable_parameters(), [a.weight, a.bias])

    def test_share_rejects_different_roles(self):
        a = InnerProductLayer("ip", ["x"], ["y"], num_outputs=2)
        a.setup(bottom((1, 3, 1, 1)))
        b = InnerProductLayer("ip", ["x"], ["y"], num_outputs=2, include_bias=False)
        b.setup(bottom((1, 3, 1, 1)))
        with self.assertRaises(ConfigurationError):
            b.share_parameters(a)

    def test_share_rejects_shape_mismatch(self):
        a = ConvolutionLayer("c", ["x"], ["y"], num_outputs=2, kernel_h=1, kernel_w=1)
        a.setup(LayerData(bottom=[Tensor("x", (1, 3, 2, 2))]))
        b = ConvolutionLayer("c", ["x"], ["y"], num_outputs=2, kernel_h=1, kernel_w=1)
        b.setup(LayerData(bottom=[Tensor("x", (1, 4, 2, 2))]))
        with self.assertRaises(ShapeMismatchError):
            b.share_parameters(a)


if __name__ == "__main__":
    unittest.main()

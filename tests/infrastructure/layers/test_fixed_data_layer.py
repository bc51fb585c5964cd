import unittest

import numpy as np

from src.flowdnn.domain import ArityError, ConfigurationError, ShapeMismatchError
from src.flowdnn.infrastructure.layers import FixedDataLayer, LayerData


class TestFixedDataLayer(unittest.TestCase):
    def setUp(self) -> None:
        self.samples = np.arange(5 * 4, dtype=np.float32).reshape(5, 4)
        self.labels = np.arange(5, dtype=np.float32)

    def _layer(self, batch_size: int = 2) -> tuple[FixedDataLayer, LayerData]:
        layer = FixedDataLayer(
            "data",
            top=["data", "label"],
            data=[self.samples, self.labels],
            shapes=[(1, 2, 2), (1, 1, 1)],
            batch_size=batch_size,
        )
        data = LayerData()
        layer.setup(data)
        return layer, data

    def test_top_shapes(self):
        _, data = self._layer()
        self.assertEqual(data.top[0].shape.as_tuple(), (2, 1, 2, 2))
        self.assertEqual(data.top[1].shape.as_tuple(), (2, 1, 1, 1))

    def test_batches_advance_and_wrap(self):
        layer, data = self._layer()
        self.assertEqual(layer.total_inputs(), 5)

        seen = []
        for _ in range(3):
            self.assertEqual(layer.forward(data), 0.0)
            seen.append(data.top[1].value.tolist())
        self.assertEqual(seen, [[0.0, 1.0], [2.0, 3.0], [4.0, 0.0]])
        self.assertEqual(layer.current_index(), 1)
        np.testing.assert_array_equal(data.top[0].value[:4], self.samples[4])
        np.testing.assert_array_equal(data.top[0].value[4:], self.samples[0])

    def test_produce_next_batch_directly(self):
        layer, data = self._layer(batch_size=1)
        layer.produce_next_batch(data.top)
        layer.produce_next_batch(data.top)
        self.assertEqual(layer.current_index(), 2)
        self.assertEqual(float(data.top[1].value[0]), 1.0)

    def test_backward_is_a_no_op(self):
        layer, data = self._layer()
        layer.forward(data)
        layer.backward(data)

    def test_mismatched_stream_lengths(self):
        layer = FixedDataLayer(
            "data", top=["a", "b"], data=[self.samples, self.labels[:3]], shapes=[(1, 2, 2), (1, 1, 1)]
        )
        with self.assertRaises(ShapeMismatchError):
            layer.setup(LayerData())

    def test_sample_size_must_match_shape(self):
        layer = FixedDataLayer("data", top=["a"], data=[self.samples], shapes=[(1, 3, 1)])
        with self.assertRaises(ShapeMismatchError):
            layer.setup(LayerData())

    def test_top_count_must_match_streams(self):
        layer = FixedDataLayer("data", top=["a", "b"], data=[self.samples], shapes=[(1, 2, 2)])
        with self.assertRaises(ArityError):
            layer.setup(LayerData())

    def test_empty_data(self):
        layer = FixedDataLayer("data", top=["a"], data=[np.zeros((0, 4))], shapes=[(1, 2, 2)])
        with self.assertRaises(ConfigurationError):
            layer.setup(LayerData())

    def test_invalid_batch_size(self):
        with self.assertRaises(ValueError):
            FixedDataLayer("data", top=["a"], data=[self.samples], shapes=[(1, 2, 2)], batch_size=0)


if __name__ == "__main__":
    unittest.main()

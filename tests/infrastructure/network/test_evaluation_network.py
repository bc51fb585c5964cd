import unittest

import numpy as np

from src.flowdnn.domain import INumericBackend
from src.flowdnn.infrastructure.layers import (
    FixedDataLayer,
    InnerProductLayer,
    NeuronLayer,
    SoftmaxWithLossLayer,
)
from src.flowdnn.infrastructure.network import Network


class LoopBackend:
    """
    Pure-Python reference backend, one scalar at a time.
    """

    def gemm(self, trans_a, trans_b, m, n, k, alpha, a, b, beta, c):
        for i in range(m):
            for j in range(n):
                s = 0.0
                for l in range(k):
                    av = a[l * m + i] if trans_a else a[i * k + l]
                    bv = b[j * k + l] if trans_b else b[l * n + j]
                    s += float(av) * float(bv)
                prev = beta * float(c[i * n + j]) if beta != 0.0 else 0.0
                c[i * n + j] = alpha * s + prev

    def gemv(self, trans_a, m, n, alpha, a, x, beta, y):
        rows, cols = (n, m) if trans_a else (m, n)
        for r in range(rows):
            s = 0.0
            for q in range(cols):
                av = a[q * n + r] if trans_a else a[r * n + q]
                s += float(av) * float(x[q])
            prev = beta * float(y[r]) if beta != 0.0 else 0.0
            y[r] = alpha * s + prev

    def dot(self, n, x, inc_x, y, inc_y):
        return sum(float(x[i * inc_x]) * float(y[i * inc_y]) for i in range(n))

    def axpy(self, alpha, x, y):
        for i in range(len(x)):
            y[i] += alpha * x[i]

    def scal(self, alpha, x):
        for i in range(len(x)):
            x[i] *= alpha

    def asum(self, x):
        return sum(abs(float(v)) for v in x)


def make_layers(samples, labels, batch_size, seed=0):
    return [
        FixedDataLayer(
            "data",
            top=["data", "label"],
            data=[samples, labels],
            shapes=[(samples.shape[1], 1, 1), (1, 1, 1)],
            batch_size=batch_size,
        ),
        InnerProductLayer("ip1", ["data"], ["h"], num_outputs=5, seed=seed),
        NeuronLayer("act", ["h"], ["a"], activation="tanh"),
        InnerProductLayer("ip2", ["a"], ["scores"], num_outputs=3, seed=seed + 1),
        SoftmaxWithLossLayer("loss", ["scores", "label"], ["loss"]),
    ]


class TestEvaluationNetwork(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(3)
        self.samples = rng.standard_normal((8, 4))
        self.labels = rng.integers(0, 3, 8)

    def test_shares_parameters_by_layer_name(self):
        train = Network(make_layers(self.samples, self.labels, batch_size=2))
        test = Network(make_layers(self.samples, self.labels, batch_size=4, seed=9), reference=train)

        for name in ("ip1", "ip2"):
            self.assertIs(test.layer(name).weight, train.layer(name).weight)
            self.assertIs(test.layer(name).bias, train.layer(name).bias)
        self.assertEqual(test.tensor("scores").shape.batch, 4)
        self.assertEqual(train.tensor("scores").shape.batch, 2)

    def test_sees_training_updates(self):
        train = Network(make_layers(self.samples, self.labels, batch_size=2))
        test = Network(make_layers(self.samples, self.labels, batch_size=8), reference=train)

        before = test.forward()
        train.layer("ip2").weight.value[...] *= 3.0
        self.assertNotAlmostEqual(test.forward(), before, places=4)

    def test_borrows_buffers_it_does_not_produce(self):
        train = Network(make_layers(self.samples, self.labels, batch_size=2))
        head = [
            InnerProductLayer("probe", ["a"], ["probe_out"], num_outputs=2),
        ]
        probe = Network(head, reference=train)

        self.assertIs(probe.tensor("a"), train.tensor("a"))
        self.assertFalse(probe.owns("a"))
        self.assertTrue(probe.owns("probe_out"))
        self.assertIs(probe.backend, train.backend)

    def test_locally_produced_names_are_not_borrowed(self):
        train = Network(make_layers(self.samples, self.labels, batch_size=2))
        test = Network(make_layers(self.samples, self.labels, batch_size=4), reference=train)
        self.assertIsNot(test.tensor("data"), train.tensor("data"))
        self.assertTrue(test.owns("data"))


class TestBackendSubstitution(unittest.TestCase):
    def test_loop_backend_satisfies_protocol(self):
        self.assertIsInstance(LoopBackend(), INumericBackend)

    def test_same_results_with_any_backend(self):
        rng = np.random.default_rng(5)
        samples = rng.standard_normal((3, 4))
        labels = rng.integers(0, 3, 3)

        fast = Network(make_layers(samples, labels, batch_size=3))
        slow = Network(make_layers(samples, labels, batch_size=3), backend=LoopBackend())

        self.assertAlmostEqual(fast.forward_backward(), slow.forward_backward(), places=5)
        for p, q in zip(fast.params, slow.params):
            np.testing.assert_allclose(p.gradient, q.gradient, rtol=1e-4, atol=1e-6)


if __name__ == "__main__":
    unittest.main()

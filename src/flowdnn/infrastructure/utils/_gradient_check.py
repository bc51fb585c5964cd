"""
Finite-difference gradient checking for single layers.

The checker turns a layer's outputs into a scalar objective

    objective = sum_t sum_i coef_t[i] * top_t.value[i]

with fixed random coefficients, seeds the top gradients with those same
coefficients, and compares the analytic gradients from one backward pass
against centered differences of the objective:

    numeric = (objective(x + h) - objective(x - h)) / (2 h)

A pair passes when ``|analytic - numeric| <= threshold * max(|analytic|,
|numeric|, 1)``. Elements whose value lies within ``kink_range`` of ``kink``
(e.g. 0 for ReLU-like functions) are skipped, since the derivative is not
defined there.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np

from ..tensor._tensor import Tensor

if TYPE_CHECKING:
    from ..layers._base import Layer, LayerData


@dataclass(frozen=True)
class GradientMismatch:
    tensor: str
    index: int
    analytic: float
    numeric: float

    def __str__(self) -> str:
        return (
            f"{self.tensor}[{self.index}]: analytic={self.analytic:.6g} "
            f"numeric={self.numeric:.6g}"
        )


class GradientChecker:
    """
    Centered finite-difference checker.

    Parameters
    ----------
    step_size : float, optional
        Perturbation ``h``. Defaults to 1e-2.
    threshold : float, optional
        Relative tolerance. Defaults to 1e-2.
    seed : int, optional
        Seed for the objective coefficients.
    kink : float, optional
        Input value at which the checked function is not differentiable.
    kink_range : float, optional
        Half-width of the skipped interval around ``kink``. Negative disables
        skipping. Defaults to -1.
    """

    def __init__(
        self,
        step_size: float = 1e-2,
        threshold: float = 1e-2,
        seed: int = 1701,
        kink: float = 0.0,
        kink_range: float = -1.0,
    ) -> None:
        self.step_size = float(step_size)
        self.threshold = float(threshold)
        self.seed = int(seed)
        self.kink = float(kink)
        self.kink_range = float(kink_range)

    def _objective(self, layer: Layer, data: LayerData, tops: Sequence[int], coefs) -> float:
        layer.forward(data)
        return float(
            sum(
                np.dot(coefs[t].astype(np.float64), data.top[t].value.astype(np.float64))
                for t in tops
            )
        )

    def check(
        self,
        layer: Layer,
        data: LayerData,
        check_bottom: Optional[Sequence[int]] = None,
        top_index: Optional[int] = None,
        check_params: bool = True,
    ) -> List[GradientMismatch]:
        """
        Compare analytic and numeric gradients of a configured layer.

        Parameters
        ----------
        layer : Layer
            A ``READY`` layer.
        data : LayerData
            The binding record ``layer`` was set up with.
        check_bottom : Sequence[int], optional
            Bottom indices to check. Defaults to all bottoms.
        top_index : int, optional
            Restrict the objective to one top. Defaults to all tops.
        check_params : bool, optional
            Also check the layer's trainable parameters. Defaults to True.

        Returns
        -------
        List[GradientMismatch]
            Every element that failed the tolerance; empty on success.
        """
        rng = np.random.default_rng(self.seed)
        tops = range(len(data.top)) if top_index is None else [top_index]
        coefs = {t: rng.uniform(-1.0, 1.0, data.top[t].size).astype(np.float32) for t in tops}
        bottoms = range(len(data.bottom)) if check_bottom is None else check_bottom

        checked: List[Tensor] = [data.bottom[i] for i in bottoms]
        if check_params:
            checked.extend(layer.trainable_parameters())

        # Loss layers keep their weight in the top gradient.
        saved = [top.gradient.copy() for top in data.top]
        try:
            layer.forward(data)
            for i, top in enumerate(data.top):
                top.gradient[...] = coefs[i] if i in coefs else 0.0
            layer.backward(data, True)
            analytic = [t.gradient.astype(np.float64) for t in checked]

            failures: List[GradientMismatch] = []
            for tensor, grads in zip(checked, analytic):
                failures.extend(self._compare(layer, data, tops, coefs, tensor, grads))
        finally:
            for top, grad in zip(data.top, saved):
                top.gradient[...] = grad

        layer.forward(data)
        return failures

    def _compare(
        self,
        layer: Layer,
        data: LayerData,
        tops: Sequence[int],
        coefs,
        tensor: Tensor,
        grads: np.ndarray,
    ) -> List[GradientMismatch]:
        failures: List[GradientMismatch] = []
        h = self.step_size
        values = tensor.value
        for i in range(values.size):
            x = float(values[i])
            try:
                values[i] = x + h
                positive = self._objective(layer, data, tops, coefs)
                values[i] = x - h
                negative = self._objective(layer, data, tops, coefs)
            finally:
                values[i] = x

            if self.kink_range >= 0 and abs(abs(x) - self.kink) <= self.kink_range:
                continue

            numeric = (positive - negative) / (2.0 * h)
            a = float(grads[i])
            scale = max(abs(a), abs(numeric), 1.0)
            if abs(a - numeric) > self.threshold * scale:
                failures.append(GradientMismatch(tensor.name, i, a, numeric))
        return failures

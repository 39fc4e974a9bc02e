"""Serialized parameter layouts for Neuron, Layer and MLP."""

import math

from pydantic import BaseModel, Field, field_validator


def _check_finite(v: float) -> float:
    if not math.isfinite(v):
        raise ValueError(f"parameter must be finite, got {v}")
    return v


class NeuronState(BaseModel):
    weights: list[float] = Field(..., min_length=1, description="One weight per input, in input order")
    bias: float = Field(0.0, description="Additive bias")

    @field_validator("weights")
    @classmethod
    def weights_finite(cls, v: list[float]) -> list[float]:
        for w in v:
            _check_finite(w)
        return v

    validate_bias = field_validator("bias")(_check_finite)


class LayerState(BaseModel):
    neurons: list[NeuronState] = Field(..., min_length=1)

    @field_validator("neurons")
    @classmethod
    def same_width(cls, v: list[NeuronState]) -> list[NeuronState]:
        widths = {len(n.weights) for n in v}
        if len(widths) > 1:
            raise ValueError(f"neurons in a layer must share input width, got {sorted(widths)}")
        return v


class MLPState(BaseModel):
    layers: list[LayerState] = Field(..., min_length=1)

    @field_validator("layers")
    @classmethod
    def chained(cls, v: list[LayerState]) -> list[LayerState]:
        for i in range(1, len(v)):
            prev_out = len(v[i - 1].neurons)
            this_in = len(v[i].neurons[0].weights)
            if prev_out != this_in:
                raise ValueError(
                    f"layer {i} expects {this_in} inputs but layer {i - 1} produces {prev_out}"
                )
        return v

import numpy as np
import pyomo.environ as pyo
from pyomo.repn import generate_standard_repn

def pyovariable_to_array(pyo_variable: pyo.Var, axes: list, fill_value: float = 0.0) -> np.ndarray:
    """
    Convert an indexed Pyomo variable to a dense NumPy array.

    #### Args:
        - pyo_variable: `pyo.Var`
                    The Pyomo variable to convert.
        - axes: `list[list]`
                    Ordered values of each index set of the variable. The
                    position of a value in its axis is its slot in the array.
        - fill_value: `float`, optional
                    Value for cells without a variable or without a value
                    (e.g. variables that do not appear in any constraint).

    #### Returns:
        - array: `np.ndarray`
                    An array of shape `(len(axes[0]), len(axes[1]), ...)`.
    """
    slots = [{key: i for i, key in enumerate(axis)} for axis in axes]
    array = np.full(tuple(len(axis) for axis in axes), fill_value, dtype=float)

    for key, value in pyo_variable.extract_values().items():
        if value is None:
            continue
        if not isinstance(key, tuple):
            key = (key,)
        array[tuple(slot[k] for slot, k in zip(slots, key))] = value

    return array

def pyoexpression_value(pyo_expression, fill_value: float = 0.0) -> float:
    """
    Evaluate a linear Pyomo expression, using `fill_value` for variables
    without a value.
    """
    repn = generate_standard_repn(pyo_expression.expr if hasattr(pyo_expression, "expr") else pyo_expression,
                                  compute_values=True)
    total = pyo.value(repn.constant)
    for var, coef in zip(repn.linear_vars, repn.linear_coefs):
        total += pyo.value(coef) * (var.value if var.value is not None else fill_value)
    return float(total)

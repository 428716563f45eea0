import json
from importlib import import_module

from ssgd.util.io import open_, path_exists

_deserialise_func_map = {}


class register_deserialiser:
    """
    registration decorator for functions to inflate objects that were
    serialised using json.

    Functions are added to a dict which is used by the deserialise_object()
    function. The type string(s) must uniquely identify the appropriate
    value for the dict 'type' entry, e.g.
    'ssgd.evolve.demography.PiecewiseDemographicFunction'.

    Parameters
    ----------
    args: str or sequence of str
        must be unique
    """

    def __init__(self, *args) -> None:
        for type_str in args:
            if not isinstance(type_str, str):
                msg = f"{type_str!r} is not a string"
                raise TypeError(msg)
            assert type_str not in _deserialise_func_map, (
                f"{type_str!r} already in {list(_deserialise_func_map)}"
            )
        self._type_str = args

    def __call__(self, func):
        for type_str in self._type_str:
            _deserialise_func_map[type_str] = func
        return func


def get_class(provenance: str) -> type:
    index = provenance.rfind(".")
    assert index > 0
    klass = provenance[index + 1 :]
    mod = import_module(provenance[:index])
    return getattr(mod, klass)


@register_deserialiser(
    "ssgd.evolve.demography.PiecewiseDemographicFunction",
    "ssgd.evolve.substitution_model.HKY85",
    "ssgd.evolve.site_rates.SiteRateModel",
    "ssgd.evolve.tip_states.ExactTipStates",
    "ssgd.evolve.tip_states.SequenceErrorModel",
)
def deserialise_from_init_args(data):
    """returns an instance constructed from the saved init arguments"""
    data = dict(data)
    data.pop("version", None)
    klass = get_class(data.pop("type"))
    return klass(**data["init_args"])


@register_deserialiser("ssgd.evolve.likelihood_function.LikelihoodFunction")
def deserialise_likelihood_function(data):
    """returns a LikelihoodFunction with the saved parameter rules, patterns
    are not restored"""
    from ssgd.evolve.likelihood_function import LikelihoodFunction

    data = dict(data)
    data.pop("version", None)
    model = deserialise_object(data.pop("model"))
    demography = deserialise_object(data.pop("demography"))
    site_rates = deserialise_object(data.pop("site_rates"))
    tip_model = deserialise_object(data.pop("tip_model"))
    rules = {r["par_name"]: r for r in data.pop("param_rules")}
    lf = LikelihoodFunction(
        model,
        demography,
        site_rates=site_rates,
        tip_model=tip_model,
        mu=rules["mu"]["value"],
        name=data.get("name"),
    )
    for name, rule in rules.items():
        lf.set_param_rule(
            name,
            is_constant=rule["is_constant"],
            lower=rule["lower"],
            upper=rule["upper"],
        )
        lf.set_param_value(name, rule["value"])
    return lf


@register_deserialiser("ssgd.core.patterns.PairwisePatternTable")
def deserialise_pattern_table(data):
    from ssgd.core.patterns import PairwisePatternTable

    return PairwisePatternTable.from_rich_dict(data)


def deserialise_object(data):
    """
    deserialises from json

    Parameters
    ----------
    data
        path to json file, json string or a dict

    Returns
    -------
    If the dict from json.loads does not contain a "type" key, the object will
    be returned as is. Otherwise, it will be deserialised to a ssgd object.

    Notes
    -----
    The value of the "type" key is used to identify the specific function for recreating
    the original instance.
    """
    if not hasattr(data, "get") and path_exists(data):
        with open_(data) as infile:
            data = json.load(infile)

    if isinstance(data, str):
        data = json.loads(str(data))

    type_ = data.get("type", None) if hasattr(data, "get") else None
    if type_ is None:
        return data

    for type_str, func in _deserialise_func_map.items():
        if type_str in type_:
            break
    else:
        msg = f"deserialising '{type_}' from json"
        raise NotImplementedError(msg)

    return func(data)

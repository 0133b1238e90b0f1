from .binding import Binding, BindingState
from .context import BindConfig, BindContext
from .dom import (
    Comment,
    Document,
    Element,
    Event,
    FormElement,
    InputElement,
    Node,
    NodeKind,
    OptionElement,
    SelectElement,
    ShadowRoot,
    Text,
    TextAreaElement,
    create_element,
)
from .errors import NodeBindError, UnsupportedTargetError
from .features import HostCapabilities, get_capabilities, reset_capabilities
from .model import ReactiveDict
from .observe import Observable, PathObserver, observer_count
from .reactive import Batch, Effect, Signal, batch, flush_effects, untrack
from .registry import (
    BindingRegistry,
    bind,
    bindings_of,
    unbind,
    unbind_all,
    unbind_subtree,
)

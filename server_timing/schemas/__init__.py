from .timing_label import LabelSpec, TimingLabel

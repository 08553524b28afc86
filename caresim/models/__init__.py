from caresim.models.certificate import Certificate
from caresim.models.progress import ProgressDocument

__all__ = ["Certificate", "ProgressDocument"]

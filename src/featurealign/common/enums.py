from enum import Enum


class DetectorChoice(Enum):
    SIFT = "sift"
    MOPS = "mops"


class Interpolation(Enum):
    NEAREST = "nearest"
    BILINEAR = "bilinear"

"""Covariate partitions, declarations, resolution and matching."""

from baselinekit.covariates.declaration import CovariateCategory, CovariateDeclaration, extract_declaration
from baselinekit.covariates.matching import CovariateMatcherRegistry, ExactStringMatcher, MatchResult
from baselinekit.covariates.model import NOT_SET, CovariateProfile, StringValue, TimeWindowValue
from baselinekit.covariates.resolvers import CovariateResolverRegistry, ResolutionContext, resolve_profile

__all__ = [
    "NOT_SET",
    "CovariateCategory",
    "CovariateDeclaration",
    "CovariateMatcherRegistry",
    "CovariateProfile",
    "CovariateResolverRegistry",
    "ExactStringMatcher",
    "MatchResult",
    "ResolutionContext",
    "StringValue",
    "TimeWindowValue",
    "extract_declaration",
    "resolve_profile",
]

"""
Cache manager family.

One candidate module per supported cache type, all in the
``cache_manager`` group. Candidates are probed in CacheType order, so the
first type whose backing library is available wins unless ``cache.type``
names another one. ``none`` is reached only when configured explicitly
because ``simple`` needs nothing and always matches before it.
"""

from enum import Enum
from typing import Dict, List, Tuple

from src.autoconfigure.conditions import (
    ComponentAbsent, ComponentPresent, Condition, PropertyValue, Scope, TypeAvailable,
)
from src.autoconfigure.modules import ModuleDescriptor


CACHE_MANAGER_TYPE = "org.springframework.cache.CacheManager"
CACHE_TYPE = "org.springframework.cache.Cache"
CACHE_TYPE_PROPERTY = "cache.type"
CACHE_GROUP = "cache_manager"
CACHE_MANAGER_NAME = "cacheManager"


class CacheType(str, Enum):
    GENERIC = "generic"
    JCACHE = "jcache"
    EHCACHE = "ehcache"
    HAZELCAST = "hazelcast"
    INFINISPAN = "infinispan"
    COUCHBASE = "couchbase"
    REDIS = "redis"
    CAFFEINE = "caffeine"
    SIMPLE = "simple"
    NONE = "none"

    @property
    def module_id(self) -> str:
        return f"cache.{self.value}"


# Extra conditions per cache type, beyond the shared ones
BACKING_CONDITIONS: Dict[CacheType, Tuple[Condition, ...]] = {
    CacheType.GENERIC: (ComponentPresent(CACHE_TYPE, Scope.BY_TYPE),),
    CacheType.JCACHE: (TypeAvailable("javax.cache.Caching"),),
    CacheType.EHCACHE: (TypeAvailable("net.sf.ehcache.Cache"),),
    CacheType.HAZELCAST: (TypeAvailable("com.hazelcast.core.HazelcastInstance"),),
    CacheType.INFINISPAN: (TypeAvailable("org.infinispan.spring.provider.SpringEmbeddedCacheManager"),),
    CacheType.COUCHBASE: (TypeAvailable("com.couchbase.client.java.Bucket"),),
    CacheType.REDIS: (TypeAvailable("org.springframework.data.redis.connection.RedisConnectionFactory"),),
    CacheType.CAFFEINE: (TypeAvailable("com.github.benmanes.caffeine.cache.Caffeine"),),
    CacheType.SIMPLE: (),
    CacheType.NONE: (PropertyValue(CACHE_TYPE_PROPERTY, expected=CacheType.NONE.value, ignore_case=True),),
}


def modules() -> List[ModuleDescriptor]:
    result = []
    for cache_type in CacheType:
        conditions = (
            ComponentAbsent(CACHE_MANAGER_TYPE, Scope.BY_TYPE),
            PropertyValue(
                CACHE_TYPE_PROPERTY,
                expected=cache_type.value,
                match_if_missing=True,
                ignore_case=True,
            ),
        ) + BACKING_CONDITIONS[cache_type]
        result.append(
            ModuleDescriptor(
                id=cache_type.module_id,
                conditions=conditions,
                group=CACHE_GROUP,
                provided_names={CACHE_MANAGER_NAME},
                provided_type=CACHE_MANAGER_TYPE,
                description=f"{cache_type.value} cache manager",
            )
        )
    return result

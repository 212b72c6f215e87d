#!/usr/bin/env python3
"""
Thread and post data models.

Field names follow the board's JSON API so persisted snapshots can be
read back by anything that understands that format.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

MEDIA_FIELDS = ('tim', 'ext', 'filename', 'fsize', 'md5', 'w', 'h')


@dataclass
class MediaDescriptor:
    """Attached file reference, dimensions and checksum."""
    tim: int
    ext: str
    filename: str = ""
    fsize: int = 0
    md5: str = ""
    w: int = 0
    h: int = 0
    
    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in MEDIA_FIELDS}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['MediaDescriptor']:
        """Build from a flat post dict, or None when the post has no file."""
        if data.get('tim') is None or not data.get('ext'):
            return None
        return cls(
            tim=int(data['tim']),
            ext=data['ext'],
            filename=data.get('filename', ''),
            fsize=int(data.get('fsize', 0)),
            md5=data.get('md5', ''),
            w=int(data.get('w', 0)),
            h=int(data.get('h', 0))
        )


@dataclass
class Post:
    """A single message inside a thread. resto == 0 marks the root post."""
    no: int
    resto: int = 0
    time: int = 0
    name: str = ""
    com: Optional[str] = None
    country: Optional[str] = None
    country_name: Optional[str] = None
    poster_id: Optional[str] = None
    trip: Optional[str] = None
    media: Optional[MediaDescriptor] = None
    
    @property
    def is_root(self) -> bool:
        return self.resto == 0
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'no': self.no,
            'resto': self.resto,
            'time': self.time,
            'name': self.name,
        }
        optional = {
            'com': self.com,
            'country': self.country,
            'country_name': self.country_name,
            'id': self.poster_id,
            'trip': self.trip,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.media:
            data.update(self.media.to_dict())
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Post':
        return cls(
            no=int(data['no']),
            resto=int(data.get('resto', 0)),
            time=int(data.get('time', 0)),
            name=data.get('name', ''),
            com=data.get('com'),
            country=data.get('country'),
            country_name=data.get('country_name'),
            poster_id=data.get('id'),
            trip=data.get('trip'),
            media=MediaDescriptor.from_dict(data)
        )


@dataclass
class Thread:
    """
    A root post plus its replies.
    
    Root post fields live on the thread itself; ``posts`` holds only the
    replies, in board order.
    """
    no: int
    time: int = 0
    name: str = ""
    sub: Optional[str] = None
    com: Optional[str] = None
    replies: int = 0
    images: int = 0
    sticky: bool = False
    closed: bool = False
    country: Optional[str] = None
    country_name: Optional[str] = None
    poster_id: Optional[str] = None
    trip: Optional[str] = None
    media: Optional[MediaDescriptor] = None
    posts: List[Post] = field(default_factory=list)
    
    @property
    def subject(self) -> str:
        return self.sub or ""
    
    def root_post(self) -> Post:
        """Synthesize the root post from the thread's own fields."""
        return Post(
            no=self.no,
            resto=0,
            time=self.time,
            name=self.name,
            com=self.com,
            country=self.country,
            country_name=self.country_name,
            poster_id=self.poster_id,
            trip=self.trip,
            media=self.media
        )
    
    def all_posts(self) -> List[Post]:
        """Root post followed by every reply."""
        return [self.root_post()] + list(self.posts)
    
    @property
    def post_count(self) -> int:
        return len(self.posts)
    
    def to_dict(self) -> Dict[str, Any]:
        data = self.root_post().to_dict()
        data.update({
            'sub': self.sub,
            'replies': self.replies,
            'images': self.images,
            'sticky': int(self.sticky),
            'closed': int(self.closed),
            'posts': [p.to_dict() for p in self.posts],
        })
        if self.sub is None:
            del data['sub']
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Thread':
        return cls(
            no=int(data['no']),
            time=int(data.get('time', 0)),
            name=data.get('name', ''),
            sub=data.get('sub'),
            com=data.get('com'),
            replies=int(data.get('replies', 0)),
            images=int(data.get('images', 0)),
            sticky=bool(data.get('sticky', 0)),
            closed=bool(data.get('closed', 0)),
            country=data.get('country'),
            country_name=data.get('country_name'),
            poster_id=data.get('id'),
            trip=data.get('trip'),
            media=MediaDescriptor.from_dict(data),
            posts=[Post.from_dict(p) for p in data.get('posts', [])]
        )
    
    @classmethod
    def from_board_posts(cls, raw_posts: List[Dict[str, Any]]) -> 'Thread':
        """
        Build a thread from the board's ``thread/<no>.json`` post list.
        
        The first entry is the root post; the rest become replies.
        """
        if not raw_posts:
            raise ValueError("Thread response contains no posts")
        thread = cls.from_dict({**raw_posts[0], 'posts': raw_posts[1:]})
        if not thread.replies:
            thread.replies = len(raw_posts) - 1
        return thread
    
    def __repr__(self):
        return f"Thread(no={self.no}, sub='{self.subject[:40]}', posts={len(self.posts)})"

"""Making animated and still meme images out of user avatars."""

from __future__ import annotations

import logging
import os
import random
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Sequence

from PIL import Image, ImageDraw, ImageFilter, ImageOps

log = logging.getLogger(__name__)

MATERIAL_BASE = "https://gitcode.net/u011570312/imagematerials/-/raw/main/"
QQ_AVATAR = "http://q4.qlogo.cn/g?b=qq&nk={}&s=640"
CHAT_IMAGE = "https://gchat.qpic.cn/gchatpic_new//--{}/0"

COMMANDS = (
    "搓", "冲", "摸", "拍", "丢", "吃", "敲", "啃", "蹭", "爬", "撕",
    "灰度", "上翻", "下翻", "左翻", "右翻", "反色", "浮雕", "打码", "负片",
)
COMMAND_RE = re.compile(
    "^(" + "|".join(COMMANDS) + r")[^0-9]*?"
    r"(\[CQ:(image,file=([0-9a-zA-Z]{32}).*|at.+?([0-9]{5,11}))\].*|([0-9]+))$"
)

Download = Callable[[str, str], None]


def _http_download(url: str, path: str) -> None:
    import requests

    response = requests.get(url, timeout=60)
    response.raise_for_status()
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_bytes(response.content)


def _resize(image: Image.Image, width: int, height: int) -> Image.Image:
    """Resize to the given size; a zero side keeps the aspect ratio, both zero keep the size."""
    if width <= 0 and height <= 0:
        return image
    if width <= 0:
        width = max(1, round(image.width * height / image.height))
    elif height <= 0:
        height = max(1, round(image.height * width / image.width))
    if (width, height) == image.size:
        return image
    return image.resize((width, height), Image.LANCZOS)


def load_first_frame(path, width: int = 0, height: int = 0) -> Image.Image:
    """The first frame of an image file as RGBA, resized when a size is given."""
    with Image.open(path) as source:
        source.seek(0)
        frame = source.convert("RGBA")
    return _resize(frame, width, height)


def circle(image: Image.Image) -> Image.Image:
    """A square cut of the image, of side twice half its height, masked to a disc."""
    radius = max(1, image.height // 2)
    side = 2 * radius
    square = _resize(image.convert("RGBA"), side, side)
    mask = Image.new("L", (side, side), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, side - 1, side - 1), fill=255)
    alpha = Image.new("L", (side, side), 0)
    alpha.paste(square.getchannel("A"), (0, 0), mask)
    square.putalpha(alpha)
    return square


def _layer(size, image: Image.Image, x: int, y: int) -> Image.Image:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    layer.paste(image, (x, y))
    return layer


def insert_up(base: Image.Image, image: Image.Image, width: int, height: int,
              x: int, y: int) -> Image.Image:
    """Draw ``image`` over ``base`` with its top left corner at (x, y)."""
    base = base.convert("RGBA")
    layer = _layer(base.size, _resize(image.convert("RGBA"), width, height), x, y)
    return Image.alpha_composite(base, layer)


def insert_bottom(base: Image.Image, image: Image.Image, width: int, height: int,
                  x: int, y: int) -> Image.Image:
    """Draw ``image`` under ``base`` with its top left corner at (x, y)."""
    base = base.convert("RGBA")
    layer = _layer(base.size, _resize(image.convert("RGBA"), width, height), x, y)
    return Image.alpha_composite(layer, base)


def insert_bottom_centered(base: Image.Image, image: Image.Image, width: int, height: int,
                           x: int, y: int) -> Image.Image:
    """Draw ``image`` under ``base`` centred on (x, y)."""
    sized = _resize(image.convert("RGBA"), width, height)
    return insert_bottom(base, sized, 0, 0, x - sized.width // 2, y - sized.height // 2)


def rotate(image: Image.Image, angle: float, width: int = 0, height: int = 0) -> Image.Image:
    """Rotate counter-clockwise by ``angle`` degrees on a transparent canvas, then resize."""
    turned = image.convert("RGBA").rotate(
        angle, resample=Image.BICUBIC, expand=True, fillcolor=(0, 0, 0, 0)
    )
    return _resize(turned, width, height)


def save_gif(path, delay: int, frames: Sequence[Image.Image]) -> None:
    """Save looping animation frames; ``delay`` is in hundredths of a second."""
    if not frames:
        raise ValueError("no frames to save")
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    first, *rest = [frame.convert("RGBA") for frame in frames]
    first.save(
        path, format="GIF", save_all=True, append_images=rest,
        duration=delay * 10, loop=0, disposal=2,
    )


def parse_command(text: str) -> Optional[tuple[str, str]]:
    """Split a message into its command and the avatar target, or None if it is not one.

    The target is an image hash, a mentioned QQ number or a plain number.
    """
    match = COMMAND_RE.match(text)
    if match is None:
        return None
    target = (match.group(4) or "") + (match.group(5) or "") + (match.group(6) or "")
    return match.group(1), target


class GifMaker:
    """Builds the images for one user from their prepared avatars and shared materials."""

    def __init__(self, datapath, user_id: int, download: Optional[Download] = None):
        self.datapath = Path(datapath)
        self.user_dir = self.datapath / "users" / str(user_id)
        self.user_dir.mkdir(parents=True, exist_ok=True)
        self.head_images = [self.user_dir / "0.gif", self.user_dir / "1.gif"]
        self._download = download or _http_download
        self._methods = {
            "摸": self.mo, "搓": self.cuo, "敲": self.qiao, "吃": self.chi,
            "蹭": self.ceng, "啃": self.ken, "拍": self.pai, "冲": self.chong,
            "丢": self.diu, "爬": self.pa, "撕": self.si,
        }

    def prepare_logos(self, *args: str) -> None:
        """Download the avatars of the given targets as 0.gif, 1.gif and so on.

        A number is a QQ user; anything else is the hash of a chat image.
        """
        for index, value in enumerate(args):
            if value.isascii() and re.fullmatch(r"[+-]?[0-9]+", value):
                url = QQ_AVATAR.format(value)
            else:
                url = CHAT_IMAGE.format(value.upper())
            self._download(url, str(self.user_dir / f"{index}.gif"))

    def logo(self, width: int, height: int, index: int = 0) -> Image.Image:
        """An avatar loaded at the given size and cut to a disc."""
        return circle(load_first_frame(self.head_images[index], width, height))

    def make(self, command: str, *args: str) -> str:
        """Run a command by name and return the file URI of the result."""
        method = self._methods.get(command)
        if method is not None:
            return method()
        return self.other(command, *args)

    def _material(self, name: str) -> Path:
        target = self.datapath / "materials" / name
        if target.exists():
            log.debug("[gif] dl %s exists at %s", name, target)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._download(MATERIAL_BASE + name, str(target))
            log.debug("[gif] dl %s to %s succeeded", name, target)
        return target

    def _materials(self, prefix: str, count: int) -> list[Image.Image]:
        os.makedirs(self.datapath / "materials" / prefix, exist_ok=True)
        names = [f"{prefix}/{i}.png" for i in range(count)]
        with ThreadPoolExecutor(max_workers=min(8, count)) as pool:
            paths = list(pool.map(self._material, names))
        return [load_first_frame(path) for path in paths]

    def _gif(self, name: str, delay: int, frames: list[Image.Image]) -> str:
        path = self.user_dir / f"{name}.gif"
        save_gif(path, delay, frames)
        return "file:///" + str(path)

    def _png(self, name: str, image: Image.Image) -> str:
        path = self.user_dir / f"{name}.png"
        image.save(path, format="PNG")
        return "file:///" + str(path)

    def mo(self) -> str:
        """Patting a head."""
        tou = self.logo(0, 0)
        imgs = self._materials("mo", 5)
        places = [(80, 80, 32, 32), (70, 90, 42, 22), (75, 85, 37, 27),
                  (85, 75, 27, 37), (90, 70, 22, 42)]
        frames = [insert_bottom(im, tou, *p) for im, p in zip(imgs, places)]
        return self._gif("摸", 1, frames)

    def cuo(self) -> str:
        """Rubbing, with the avatar spinning."""
        tou = self.logo(110, 110)
        turns = [tou] + [rotate(tou, angle) for angle in (72, 144, 216, 288)]
        imgs = self._materials("cuo", 5)
        frames = [insert_bottom_centered(im, t, 0, 0, 75, 130) for im, t in zip(imgs, turns)]
        return self._gif("搓", 5, frames)

    def qiao(self) -> str:
        """Knocking on a head."""
        tou = self.logo(40, 40)
        imgs = self._materials("qiao", 2)
        frames = [
            insert_up(imgs[0], tou, 40, 33, 57, 52),
            insert_up(imgs[1], tou, 38, 36, 58, 50),
        ]
        return self._gif("敲", 1, frames)

    def chi(self) -> str:
        """Eating the avatar."""
        tou = self.logo(32, 32)
        imgs = self._materials("chi", 3)
        frames = [insert_bottom(im, tou, 0, 0, 1, 38) for im in imgs]
        return self._gif("吃", 1, frames)

    def ceng(self) -> str:
        """Two avatars nuzzling; needs both avatars."""
        tou = self.logo(100, 100)
        tou2 = self.logo(100, 100, 1)
        imgs = self._materials("ceng", 6)
        frames = [
            insert_up(insert_up(imgs[0], tou, 75, 77, 40, 88), tou2, 77, 103, 102, 81),
            insert_up(insert_up(imgs[1], tou, 75, 77, 46, 100),
                      rotate(tou2, 10, 62, 127), 0, 0, 92, 40),
            insert_up(insert_up(imgs[2], tou, 75, 77, 67, 99), tou2, 76, 117, 90, 8),
            insert_up(insert_up(imgs[3], tou, 75, 77, 52, 83),
                      rotate(tou2, -40, 94, 94), 0, 0, 53, -20),
            insert_up(insert_up(imgs[4], tou, 75, 77, 56, 110),
                      rotate(tou2, -66, 132, 80), 0, 0, 78, 40),
            insert_up(insert_up(imgs[5], tou, 75, 77, 62, 102), tou2, 71, 100, 110, 94),
        ]
        return self._gif("蹭", 8, frames)

    def ken(self) -> str:
        """Gnawing; the avatar shows in the first six frames only."""
        tou = self.logo(100, 100)
        imgs = self._materials("ken", 16)
        places = [(90, 90, 105, 150), (90, 83, 96, 172), (90, 90, 106, 148),
                  (88, 88, 97, 167), (90, 85, 89, 179), (90, 90, 106, 151)]
        frames = [insert_bottom(im, tou, *p) for im, p in zip(imgs, places)]
        frames.extend(imgs[len(places):])
        return self._gif("啃", 7, frames)

    def pai(self) -> str:
        """Slapping."""
        tou = self.logo(30, 30)
        imgs = self._materials("pai", 2)
        frames = [insert_up(imgs[0], tou, 0, 0, 1, 47), insert_up(imgs[1], tou, 0, 0, 1, 67)]
        return self._gif("拍", 1, frames)

    def chong(self) -> str:
        """Charging."""
        tou = self.logo(0, 0)
        imgs = self._materials("xqe", 2)
        frames = [
            insert_up(imgs[0], tou, 30, 30, 15, 53),
            insert_up(imgs[1], tou, 30, 30, 40, 53),
        ]
        return self._gif("冲", 1, frames)

    def diu(self) -> str:
        """Throwing the avatar away."""
        tou = self.logo(0, 0)
        imgs = self._materials("diu", 8)
        frames = [
            insert_up(imgs[0], tou, 32, 32, 108, 36),
            insert_up(imgs[1], tou, 32, 32, 122, 36),
            imgs[2],
            insert_up(imgs[3], tou, 123, 123, 19, 129),
            insert_up(insert_up(imgs[4], tou, 185, 185, -50, 200), tou, 33, 33, 289, 70),
            insert_up(imgs[5], tou, 32, 32, 280, 73),
            insert_up(imgs[6], tou, 35, 35, 259, 31),
            insert_up(imgs[7], tou, 175, 175, -50, 220),
        ]
        return self._gif("丢", 7, frames)

    def pa(self) -> str:
        """Crawling, on one of sixty pictures chosen at random."""
        tou = self.logo(0, 0)
        number = random.randint(1, 60)
        os.makedirs(self.datapath / "materials" / "pa", exist_ok=True)
        base = load_first_frame(self._material(f"pa/{number}.png"))
        return self._png("爬", insert_bottom(base, tou, 100, 100, 0, 400))

    def si(self) -> str:
        """Tearing the avatar in two."""
        tou = self.logo(0, 0)
        im1 = rotate(tou, 20, 380, 380)
        im2 = rotate(tou, -12, 380, 380)
        os.makedirs(self.datapath / "materials" / "si", exist_ok=True)
        base = load_first_frame(self._material("si/0.png"))
        result = insert_bottom(base, im1, im1.width, im1.height, -3, 370)
        result = insert_bottom(result, im2, im2.width, im2.height, 653, 310)
        return self._png("撕", result)

    def other(self, name: str, *args: str) -> str:
        """Simple whole-image effects on the first avatar, saved as ``<name>.png``."""
        image = load_first_frame(self.head_images[0])
        alpha = image.getchannel("A")

        def keep_alpha(rgb: Image.Image) -> Image.Image:
            out = rgb.convert("RGB").convert("RGBA")
            out.putalpha(alpha)
            return out

        if name in ("上翻", "下翻"):
            result = ImageOps.flip(image)
        elif name in ("左翻", "右翻"):
            result = ImageOps.mirror(image)
        elif name == "反色":
            result = keep_alpha(ImageOps.invert(image.convert("RGB")))
        elif name == "灰度":
            result = keep_alpha(ImageOps.grayscale(image.convert("RGB")))
        elif name == "负片":
            result = keep_alpha(ImageOps.grayscale(ImageOps.invert(image.convert("RGB"))))
        elif name == "浮雕":
            result = keep_alpha(image.convert("RGB").filter(ImageFilter.EMBOSS))
        elif name == "打码":
            result = image.filter(ImageFilter.GaussianBlur(10))
        elif name == "旋转":
            try:
                angle = float(args[0]) if args else 0.0
            except ValueError:
                angle = 0.0
            result = rotate(image, angle)
        elif name == "变形":
            if len(args) < 2:
                raise ValueError("变形 needs a width and a height")
            result = _resize(image, int(args[0]), int(args[1]))
        else:
            raise ValueError("no such method")
        return self._png(name, result)
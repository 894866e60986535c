import sys

from .decoder import decode


def qoi_to_png(qoi_path, png_path):
    # The reference encoder may index its zero-filled cache for transparent black
    header, pixels = decode(qoi_path, lenient_cache=True)

    img = pixels.to_image(header.channels)
    img.save(png_path, format="PNG")
    print(f"Converted {qoi_path} to {png_path}")
    return header


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("usage: qoistream-convert INPUT.qoi OUTPUT.png", file=sys.stderr)
        return 2

    qoi_to_png(args[0], args[1])
    return 0


if __name__ == "__main__":
    sys.exit(main())
